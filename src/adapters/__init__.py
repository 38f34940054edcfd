"""Adaptadores de I/O: cliente Graph (httpx) y exportadores."""
