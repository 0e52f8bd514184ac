"""
Features Module - Self-contained feature units.

- documents: Document records, slots, retrieval and extraction
- storage: Object-store and local-filesystem byte backends
"""
