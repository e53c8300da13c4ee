"""HTTP blueprints for the bulk user import service."""
