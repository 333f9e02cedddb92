"""Simulated ASPEX-STEPS telemetry monitor."""
