"""
Sync pipeline: sources, transformers, destinations, engine and triggers.

Modules:
    sources: Source base class, record streams and the source registry
    transformers: Record transformers and chain assembly
    loaders: Destination writers
    engine: SyncEngine (one run of one job)
    guard: RunningJobsGuard (one run per job at a time)
    triggers: Cron and file-watch triggers
"""
