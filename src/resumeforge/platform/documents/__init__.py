"""
Resume and cover letter preview.

Normalizes document data, renders it through a fixed set of templates and
computes the zoom and page-break hints the editor preview needs.
"""
