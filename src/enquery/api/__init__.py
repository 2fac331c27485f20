"""HTTP access to the Enapter telemetry API."""
