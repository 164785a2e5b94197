"""Core types shared by the query layer, the sources layer and the CLI."""
