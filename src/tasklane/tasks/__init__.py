"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskDraft, FilterState, enums)
- capabilities.py: which optional task columns the store accepts
- task_query.py: filtered/sorted task list with stale-result protection
- task_mutations.py: create/update/delete/status cycling with schema fallbacks
"""
