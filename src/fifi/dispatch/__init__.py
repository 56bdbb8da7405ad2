"""Playbook-run dispatch.

MODULE MAP (recommended reading order)
──────────────────────────────────────
  1. models.py        ─ data model + DispatchConfig
  2. connectivity.py  ─ executors and their connectivity status
  3. policy.py        ─ exclusion filter, update mode, update interval
  4. formats.py       ─ receptor wire envelopes
  5. builder.py       ─ per-executor work request
  6. dispatcher.py    ─ sequential fan-out, canary failure policy
  7. recorder.py      ─ run / executor / system rows
  8. cancellation.py  ─ tolerant cancel broadcast
  9. probes.py        ─ injected reporters
 10. service.py       ─ FifiService (exposed operations)

Submodules are not re-exported here; import them directly.
"""
