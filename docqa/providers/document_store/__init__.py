"""Document store adapters: Supabase (production) and ChromaDB (local)."""
