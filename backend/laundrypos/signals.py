# Overview: Observer hooks for the terminal core (blinker, as used by Flask's own signals).

"""
Terminal signals

Subscribers receive plain keyword arguments; senders are the concrete
LocalStore / SyncOrchestrator instances so several terminals (tests) can
coexist in one process.

- record_committed(store, collection=..., ids=[...])  after put() commits
- records_synced(store, collection=..., ids=[...])    after mark_synced()
- save_finished(orchestrator, outcome=SaveOutcome)    after every save()
"""

from blinker import Namespace

_signals = Namespace()

record_committed = _signals.signal("record-committed")
records_synced = _signals.signal("records-synced")
save_finished = _signals.signal("save-finished")
