"""
Schemas Package for Takeaway Bot
================================

Pydantic request and response models for the HTTP surface.
"""
