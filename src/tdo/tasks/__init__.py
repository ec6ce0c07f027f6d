"""
Task subsystem.

Components:
- task_models.py: data structures (OpenTask, ArchivedTask, Action) and line codec
- task_store.py: flat-file storage with atomic whole-file writes
- uid.py: identifier generation and prefix resolution
"""
