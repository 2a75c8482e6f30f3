# src/shared/__init__.py
"""
Общий код между ботом и REST API.
"""

__all__: list[str] = []
