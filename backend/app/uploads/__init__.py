"""File upload relay module.

This module accepts a single uploaded file, validates it and forwards the
bytes to a third-party media host, returning the public URL.

Supported file types:
- Images: jpeg, jpg, png, gif, webp
- Video: mp4, webm, quicktime
- Audio: mpeg, wav, ogg
- Documents: pdf
- Archives: zip, rar
- Anything up to 100MB

Files are buffered in memory only and never written to local disk.
"""
