"""Message catalogs, one JSON file per language."""
