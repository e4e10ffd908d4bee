"""Semantic retrieval: embeddings, vector store and question answering."""
