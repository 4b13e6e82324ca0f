"""
Service layer: module functions that take a `Session` and own their
transaction.

Only entries and days are served over HTTP (`bujo.routers`). Habits,
lists, goals, day context, summaries, export/import, archive, backup,
stats, change detection and the model manifest are called in-process by
whatever embeds the store; they have no routes.
"""
