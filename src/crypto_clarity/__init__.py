"""Crypto Clarity: usage-gated crypto explanations and scam risk assessments."""
