import argparse
import asyncio
import logging

from bigtwo.models import RoomConfig
from .server import HostServer


def main() -> None:
    parser = argparse.ArgumentParser(description="Big Two table host server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--capacity", type=int, default=10, help="Players per room, seated and waiting")
    parser.add_argument(
        "--max-deal-attempts",
        type=int,
        default=500,
        help="Redeals allowed before a hand holding all four 2s is accepted",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed shuffles for reproducible sessions")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level))

    config = RoomConfig(
        capacity=args.capacity,
        max_deal_attempts=args.max_deal_attempts,
        seed=args.seed,
    )

    server = HostServer(config)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
