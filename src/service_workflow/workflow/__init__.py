"""
Workflow subsystem.

Components:
- catalog.py: the static task catalog (categories, subtasks, owner roles)
- models.py: data structures (TaskStatus, TaskDefinition, TaskInstance)
- aliases.py: legacy/canonical task id spellings
- roles.py: role gate for actions
- transitions.py / store.py: per-date status store with optimistic writes
- derived.py: statuses derived from lyrics / sermon translation state
- dispatcher.py: user actions -> persistence -> reconciliation
- scheduler.py: visibility-aware polling
- board.py: wires the above together for the UI
"""
