# Eventlet monkey patching MUST be first before any other imports
import eventlet
eventlet.monkey_patch()

from dailypicks import create_app, db, socketio  # noqa: E402
from dailypicks.models import DailyScore, Game, Pick, Profile, Slate, Streak  # noqa: E402

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "Profile": Profile,
        "Slate": Slate,
        "Game": Game,
        "Pick": Pick,
        "DailyScore": DailyScore,
        "Streak": Streak,
    }


if __name__ == "__main__":
    socketio.run(app, host="0.0.0.0", port=5000, debug=True)
