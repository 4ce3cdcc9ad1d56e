"""
Dyadic Interaction Client
Runs one participant's session: observation phase, then the coordinator-driven
interaction loop.

Usage:
    python run_interaction.py [config.json]
"""

import logging
import sys

from config.interaction import InteractionConfig
from interaction.client import InteractionClient


def load_config(argv) -> InteractionConfig:
    if len(argv) > 1:
        print(f"[Client] Loading configuration from {argv[1]}")
        return InteractionConfig.load(argv[1])
    print("[Client] Using default configuration")
    return InteractionConfig()


def main(argv=None) -> int:
    argv = argv if argv is not None else sys.argv
    config = load_config(argv)

    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s"
    )

    errors = config.validate()
    if errors:
        print("[Client] Configuration errors:")
        for error in errors:
            print(f"  - {error}")
        return 1

    # Import here so pyglet only opens a display once the config is valid
    from interaction.presentation.pyglet_presenter import PygletPresenter

    presenter = PygletPresenter(fullscreen=config.fullscreen, image_dir=config.image_dir)
    client = InteractionClient(config, presenter)
    print(f"[Client] Participant {client.session.participant_id}, "
          f"coordinator {config.host}:{config.port}")

    try:
        client.run()
    except KeyboardInterrupt:
        print("\n[Client] Interrupted by user")
        return 130

    if client.failed:
        print(f"[Client] Session terminated: {client.failed}")
        return 2
    print("[Client] Session finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
