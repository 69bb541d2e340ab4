"""Depo bazlı stok defteri: stok hareketleri, tutarlılık kuralları ve analizler."""

__version__ = "0.1.0"
