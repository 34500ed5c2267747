"""HTTP layer exposing prices and history."""
