"""Command-line tools: resolve_asset and validate_assets."""
