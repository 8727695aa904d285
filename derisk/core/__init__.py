"""Core risk engines: contagion, depeg, consensus and the assessment pipeline."""
