"""Legal tool framework.

Provides the static tool catalog and registry, the handler dispatch
table, and the file-backed to-do store behind ``todo_manager``.
"""
