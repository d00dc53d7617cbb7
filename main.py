from app.main import create_app, lifespan

__all__ = ["app", "create_app", "lifespan"]

app = create_app()
