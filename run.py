import eventlet
eventlet.monkey_patch()

from weighttrack import create_app
from weighttrack.extensions import socketio

app = create_app()

if __name__ == '__main__':
    socketio.run(app, debug=app.config.get("DEBUG", False), host="0.0.0.0", port=5000)
