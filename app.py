import os

from gym_attendance.main import create_app

app = create_app()


if __name__ == "__main__":
    # Single process: the reconciliation scheduler runs inside it.
    app.run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")), use_reloader=False)
