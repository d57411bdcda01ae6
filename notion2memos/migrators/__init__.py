"""
Memos API migrators and helpers.

This subpackage provides the client that creates memos through the Memos
REST API, and a dry-run writer with the same interface that saves memos as
local Markdown files instead.
"""
