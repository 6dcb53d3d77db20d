"""CLI command modules for obsidian-flashcards.

- shared.py: Common utilities (config/logger loading, console)
- core_commands.py: sync, check and labels commands
- sync_handler.py: Sync command implementation
"""
