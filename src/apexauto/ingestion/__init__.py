"""Row value normalisation helpers."""
