from .main import app, create_app, run_server

__all__ = ["app", "create_app", "run_server"]
