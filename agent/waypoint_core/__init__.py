"""
waypoint_core: background location tracking agent
=================================================
Architecture: serial worker lanes (threads), no shared mutable state
outside the buffer and the settings store.

  constants.py       → Thresholds, timeouts, wire paths
  config.py          → Paths, logging setup, safe_print
  store.py           → KeyValueStore (one JSON file per key, atomic writes)
  settings.py        → TrackingConfig (persisted settings)
  models.py          → Fix, PositionRecord, Visit
  geo.py             → Haversine distance
  position_source.py → PositionSource contract + queue / replay sources
  sample_filter.py   → SampleFilter (accuracy, time, displacement rules)
  buffer.py          → LocalBuffer (persisted FIFO)
  lanes.py           → SerialLane / SingleFlight workers
  http_client.py     → HTTP session with retry/pooling + certifi
  network.py         → Connectivity probe + NetworkMonitor
  notifier.py        → Best-effort debug notifications
  uploader.py        → UploadPipeline (chunked at-least-once delivery)
  state.py           → DutyCycleState dataclass
  duty_cycle.py      → DutyCycleController (live vs passive sampling)
  app.py             → TrackingAgent (wiring + control surface)
  runner.py          → CLI main() + auto-restart wrapper
"""
