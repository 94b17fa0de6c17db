"""ID Document Anchor Scanner.

A template-driven OCR pipeline that locates printed keyword anchors on
photographed identity documents with pooled Tesseract workers, derives
per-field regions from them, and scores detection quality.
"""
