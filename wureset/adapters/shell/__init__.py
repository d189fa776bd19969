"""Shell-level adapters: commands and the filesystem."""
