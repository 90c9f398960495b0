"""
notifications — Emergency notification fan-out.

Sub-modules:
    channels/    — Per-channel delivery clients (email, SMS)
    capability   — Which channels a request may use
    resolvers    — Who to notify (personal contacts / responders)
    dispatcher   — Concurrent settle-all fan-out
    aggregator   — Delivery report
    service      — Orchestration + process-scoped dependencies
    handoff      — Background notification after an SOS report
    models       — Data structures shared across the package
"""
