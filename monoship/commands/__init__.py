"""CLI subcommands for monoship."""
