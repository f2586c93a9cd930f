from eventlet import monkey_patch

monkey_patch()

import logging

from app import create_app, socketio
from settings import load_settings


def main():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings()
    app = create_app(settings)
    socketio.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
