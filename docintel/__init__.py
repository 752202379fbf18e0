"""Government Document Intelligence Pipeline.

Queues scanned identity documents, extracts their text with Tesseract,
classifies the document type, parses structured fields, and flags
documents that look unauthentic or low-quality.
"""
