"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Row normalization
- Chunked embedding generation
- Vector storage (pgvector and in-memory)
- Similarity retrieval
- Answer synthesis
"""
