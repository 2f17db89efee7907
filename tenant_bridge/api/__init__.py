"""HTTP surface: auth, request validation and v1 blueprints."""
