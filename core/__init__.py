"""
Core data structures and operations for the soundboard.

Modules:
- models: Block, Page, Project, Library data structures
- library: Page/project/block operations over the Library
- layout: Grid snapping, overlap test, auto-placement
- hashing: Content-derived identities
- exchange: Page export/import (JSON and legacy text)
- persistence: Library storage through a key/value store
- settings: User settings (JSON)
- constants: Layout and format constants
"""
