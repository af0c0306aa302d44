"""Built-in plugins shipped with linkctl."""
