"""py-cord cogs wiring the inspector into a bot."""
