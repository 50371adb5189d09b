"""
Ingestion and retrieval core for PDF question answering.

Modules
-------
config       – Pipeline settings (chunk sizes, batch size, limits, provider)
errors       – Error taxonomy shared by every stage
schemas      – Pydantic models for uploads, chunks, snapshots, citations
pdf_parser   – PDF text extraction chain (pdfminer → PyMuPDF → pdfplumber)
chunker      – Whitespace normalisation + sliding-window chunking
dedup        – Chunk fingerprints and duplicate suppression
embeddings   – Embedder interface, sentence-transformers and Jina backends
vectordb     – Append-only ChromaDB store keyed by sequence index
retriever    – Cosine similarity and stable top-k ranking
pipeline     – End-to-end ingestion orchestrator
"""
