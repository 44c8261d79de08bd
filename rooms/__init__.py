"""
Room Orchestrator - lifecycle manager for isolated room containers

Responsibilities:
- Lease non-overlapping UDP port ranges to rooms
- Build self-describing container specs (env, labels, routing)
- Create/start/stop/restart/remove room containers
- Reconstruct all room state from the container inventory
"""
