"""Text rendering for assessments and backtests."""
