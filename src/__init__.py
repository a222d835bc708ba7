"""Page OCR Extraction.

Renders each page of a PDF with poppler, cleans it up with OpenCV,
recognizes text with Tesseract, and extracts entities (emails, dates,
URLs, amounts) and labeled ``key: value`` fields page by page.
"""
