"""CLI subcommands for depwatch."""
