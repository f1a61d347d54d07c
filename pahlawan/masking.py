"""Masking of personal data such as e-mail addresses and phone numbers."""

from __future__ import annotations


def mask_pii(value: str) -> str:
    """Mask an e-mail address or phone number for logs and display."""
    if not value:
        return ""

    if "@" in value:
        parts = value.split("@")
        local = parts[0]
        if len(local) <= 2:
            return value
        return f"{local[0]}***{local[-1]}@{parts[1]}"

    if len(value) > 8:
        return f"{value[:4]}****{value[-4:]}"

    return "****"