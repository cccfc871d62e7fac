"""Homepage content sections: listing, CRUD, ordering and image uploads."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from apexauto.config import ApexConfig
from apexauto.exceptions import ApexRecordNotFoundError, ApexStorageError, ApexStoreError, ApexValidationError
from apexauto.models.section import ContentSection, SectionContent, SectionType, merge_content
from apexauto.notifications import NotificationCenter
from apexauto.state.collection import LiveCollection
from apexauto.state.editor import DebouncedEditor
from apexauto.storage import ImageUploader
from apexauto.store.base import EntityKind, RemoteStore
from apexauto.validation import SECTION_RULES, require_valid

_logger = logging.getLogger(__name__)

_READ_ONLY_FIELDS: frozenset[str] = frozenset({"id", "created_at", "updated_at"})


def _section_key(section: ContentSection) -> str:
    return section.id


def _section_fields(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Map caller-facing names onto stored columns."""
    fields: dict[str, Any] = {}
    for name, value in changes.items():
        if name in _READ_ONLY_FIELDS:
            continue
        if name == "type":
            name = "section_type"
        if isinstance(value, SectionType):
            value = value.value
        elif isinstance(value, SectionContent):
            value = value.to_blob()
        fields[name] = value
    return fields


class ContentService:
    """Editable homepage sections stored in ``content_sections``.

    Sections are listed by ``sort_order``.  A failed read keeps the last
    snapshot (empty before the first successful load).
    """

    def __init__(
        self,
        store: RemoteStore,
        *,
        storage: ImageUploader | None = None,
        config: ApexConfig | None = None,
        notifications: NotificationCenter | None = None,
    ) -> None:
        self._store = store
        self._storage = storage
        self._config = config or ApexConfig()
        self._notifications = notifications or NotificationCenter()
        self._collection: LiveCollection[ContentSection] = LiveCollection(
            store,
            EntityKind.CONTENT_SECTIONS,
            parse=ContentSection.model_validate,
            key=_section_key,
            to_record=ContentSection.to_record,
            order_by="sort_order",
            notifications=self._notifications,
            label="content sections",
        )
        self._editors: list[DebouncedEditor] = []

    @property
    def collection(self) -> LiveCollection[ContentSection]:
        return self._collection

    @property
    def sections(self) -> tuple[ContentSection, ...]:
        return self._collection.snapshot

    def start(self) -> None:
        self._collection.start()

    async def aclose(self) -> None:
        for editor in self._editors:
            await editor.aclose()
        self._editors.clear()
        await self._collection.aclose()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_sections(self) -> tuple[ContentSection, ...]:
        return await self._collection.refresh()

    def visible_sections(self) -> list[ContentSection]:
        return sorted(
            (section for section in self._collection.snapshot if section.visible),
            key=lambda section: section.sort_order,
        )

    def get_section(self, section_id: str) -> ContentSection | None:
        return self._collection.get(str(section_id))

    def get_section_by_type(self, section_type: SectionType | str) -> ContentSection | None:
        for section in self._collection.snapshot:
            if section.type == section_type:
                return section
        return None

    def _require_section(self, section_id: str) -> ContentSection:
        section = self.get_section(section_id)
        if section is None:
            raise ApexRecordNotFoundError(
                f"No content section with id {section_id}",
                kind=EntityKind.CONTENT_SECTIONS.value,
            )
        return section

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add_section(
        self,
        section_type: SectionType | str,
        title: str,
        *,
        content: SectionContent | Mapping[str, Any] | None = None,
        visible: bool = True,
        sort_order: int | None = None,
    ) -> ContentSection:
        """Validate and create a section, appended after the last one by default."""
        try:
            require_valid({"title": title, "type": section_type}, SECTION_RULES)
            try:
                resolved_type = SectionType(section_type)
            except ValueError:
                raise ApexValidationError(
                    f"Unknown section type {section_type!r}",
                    errors={"type": "Invalid format"},
                ) from None
        except ApexValidationError as exc:
            self._notifications.error(str(exc))
            raise

        if sort_order is None:
            sort_order = max((section.sort_order for section in self._collection.snapshot), default=0) + 1
        section = ContentSection(
            type=resolved_type,
            title=title.strip(),
            visible=visible,
            sort_order=sort_order,
            content=content if content is not None else {},
        )
        try:
            row = await self._store.create(EntityKind.CONTENT_SECTIONS, section.to_row())
        except ApexStoreError as exc:
            self._notifications.error(f"Failed to add section: {exc}")
            raise
        self._notifications.success("New section added successfully!")
        return ContentSection.model_validate(row)

    async def update_section(self, section_id: str, changes: Mapping[str, Any]) -> ContentSection:
        fields = _section_fields(changes)
        if "title" in fields:
            require_valid(fields, {"title": SECTION_RULES["title"]})
        try:
            row = await self._store.update(EntityKind.CONTENT_SECTIONS, str(section_id), fields)
        except ApexStoreError as exc:
            self._notifications.error(f"Failed to update section: {exc}")
            raise
        return ContentSection.model_validate(row)

    async def update_section_content(self, section_id: str, updates: Mapping[str, Any]) -> ContentSection:
        """Shallow-merge *updates* (camelCase keys) into the section's content blob."""
        section = self._require_section(section_id)
        merged = merge_content(section.content.to_blob(), updates)
        updated = await self.update_section(section_id, {"content": merged})
        self._notifications.success("Content updated successfully!")
        return updated

    async def toggle_visibility(self, section_id: str, visible: bool) -> ContentSection:
        updated = await self.update_section(section_id, {"visible": visible})
        self._notifications.success("Section visibility updated successfully!")
        return updated

    async def reorder_sections(self, ids_in_order: Sequence[str]) -> None:
        """Persist a new order: the n-th id gets ``sort_order = n`` (1-based)."""
        rows = [{"id": str(section_id), "sort_order": index + 1} for index, section_id in enumerate(ids_in_order)]
        try:
            await self._store.upsert(EntityKind.CONTENT_SECTIONS, rows, on_conflict="id")
        except ApexStoreError as exc:
            self._notifications.error(f"Failed to reorder sections: {exc}")
            raise
        self._notifications.success("Section order updated successfully!")

    async def delete_section(self, section_id: str) -> None:
        try:
            await self._store.delete(EntityKind.CONTENT_SECTIONS, str(section_id))
        except ApexStoreError as exc:
            self._notifications.error(f"Failed to delete section: {exc}")
            raise
        self._notifications.success("Section deleted successfully!")

    async def upload_image(self, filename: str, content: bytes, *, content_type: str | None = None) -> str:
        """Upload an image for a section and return its public URL."""
        if self._storage is None:
            raise ApexStorageError("Object storage is not configured")
        try:
            url = await self._storage.upload(filename, content, content_type=content_type)
        except ApexStorageError as exc:
            self._notifications.error(f"Error uploading image: {exc}")
            raise
        _logger.info("Uploaded %s to %s", filename, url)
        return url

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def editor(self, section_id: str | None = None) -> DebouncedEditor:
        """Create a debounced section editor attached to the live list."""
        editor = DebouncedEditor(
            self._write_fields,
            notifications=self._notifications,
            delay=self._config.debounce_delay,
            write_timeout=self._config.write_timeout,
            label="section",
        )
        self._collection.attach(editor)
        self._editors.append(editor)
        if section_id is not None:
            editor.select(self._require_section(section_id).to_record())
        return editor

    async def _write_fields(self, key: str, fields: dict[str, Any]) -> dict[str, Any]:
        if "title" in fields:
            require_valid(fields, {"title": SECTION_RULES["title"]})
        row = await self._store.update(EntityKind.CONTENT_SECTIONS, key, fields)
        return ContentSection.model_validate(row).to_record()
