"""
Trend Radar -- trend detection over normalized content batches.

Groups content by hashtag and caption keyword, scores each group for
virality and growth, matches content across platforms, follows each trend's
lifecycle across runs and forecasts where emerging trends are heading.

Components:
  grouper.py         -- Hashtag and keyword groups for one batch
  scorer.py          -- Group metrics, 0-100 viral score and lifecycle phase
  cross_platform.py  -- Content keys shared across platforms
  tracker.py         -- Emerging/confirmed lifecycle store
  predictor.py       -- Linear 24h trajectory forecasts
  engine.py          -- Runs the above over a batch and summarizes it
"""
