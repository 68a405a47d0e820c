"""Entry point for running the shift desk API."""

from shiftdesk import create_app

app = create_app()

if __name__ == "__main__":
    app.run()
