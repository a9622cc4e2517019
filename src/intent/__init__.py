"""Command parsing and validation.

The intent layer converts a short natural-language transcript into a strict `StructuredCommand`
(or a clarification request), which is then planned against the lesson store.
"""
