"""docqa: document question-answering backend (ingest PDFs/notes, answer with RAG)."""

__version__ = "0.1.0"
