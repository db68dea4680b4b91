"""
Services module: the tracking pipeline and the statistics behind the dashboard.

Tracking: RequestGate -> IdentityHasher -> EventStore -> RedirectPolicy,
orchestrated by TrackingService. Dashboard: StatsEngine over EventStore,
memoized in AggregateCache. OptionStore holds the operator's redirect settings.
"""
