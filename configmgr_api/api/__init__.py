"""HTTP edge: blueprints, authentication gate, envelope and error mapping."""
