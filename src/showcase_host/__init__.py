def main() -> int:
    """Entry point for the application.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    from showcase_host.api.main import main as serve

    serve()
    return 0
