"""Terminal interface: typer commands and rich rendering."""
