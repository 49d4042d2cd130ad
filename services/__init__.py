"""Services package - OCR and figure capture orchestration."""
