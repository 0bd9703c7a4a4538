from .http_controller import create_app
from tools.config import SignalingConfig
from tools.logger import *


def main_signaling_task(config: SignalingConfig):
    """
    Serve the signaling endpoint until interrupted.
    """
    app = create_app(config)
    log_info(f"Serving signaling endpoint on http://{config.host}:{config.port}{config.endpoint}")
    app.run(host=config.host, port=config.port)
