"""HTTP surface for the Mosaic server."""
