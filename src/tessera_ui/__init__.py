"""Server-rendered views for Tessera layouts."""
