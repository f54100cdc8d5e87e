import argparse
import json
import sys
from pathlib import Path

from ._config import load_settings_config
from .contracts import ConnectRequest, DiscoverMode, DiscoverShapesRequest, PublishRequest, Record, Shape
from .errors import PublisherError
from .server import Server
from .settings import Settings


def _load_shapes(file_path: str) -> list[Shape]:
    data = json.loads(Path(file_path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = [data]
    return [Shape.model_validate(item) for item in data]


def _connect(server: Server, settings_path: str) -> None:
    settings = Settings.from_mapping(load_settings_config(file_path=settings_path))
    server.connect(ConnectRequest.from_settings(settings))


class _StdoutSink:
    def send(self, record: Record) -> None:
        print(record.model_dump_json(by_alias=True))


def cmd_test_connection(args, server: Server) -> int:
    """Handle test-connection subcommand."""
    try:
        _connect(server, args.settings)
        success = True
    except (PublisherError, OSError, ValueError) as e:
        print(f"Connection failed: {e}", file=sys.stderr)
        success = False
    finally:
        server.disconnect()

    print(json.dumps({"success": success}))
    return 0 if success else 1


def cmd_discover(args, server: Server) -> int:
    """Handle discover subcommand."""
    try:
        _connect(server, args.settings)
        request = DiscoverShapesRequest(
            mode=DiscoverMode.REFRESH,
            to_refresh=_load_shapes(args.shapes),
            sample_size=args.sample_size,
        )
        response = server.discover_shapes(request)
    except (PublisherError, OSError, ValueError) as e:
        print(f"Discovery failed: {e}", file=sys.stderr)
        return 1
    finally:
        server.disconnect()

    print(response.model_dump_json(by_alias=True))
    failed = [shape.id for shape in response.shapes if shape.errors]
    if failed:
        print(f"Shapes with errors: {', '.join(failed)}", file=sys.stderr)
        return 1
    return 0


def cmd_publish(args, server: Server) -> int:
    """Handle publish subcommand."""
    try:
        _connect(server, args.settings)
        shapes = _load_shapes(args.shape)
        if len(shapes) != 1:
            print("Error: --shape must contain exactly one shape", file=sys.stderr)
            return 2
        server.publish_stream(PublishRequest(shape=shapes[0], limit=args.limit), _StdoutSink())
    except (PublisherError, OSError, ValueError) as e:
        print(f"Publish failed: {e}", file=sys.stderr)
        return 1
    finally:
        server.disconnect()

    return 0


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Publish SQL query results as typed record streams")
    subparsers = parser.add_subparsers(dest="command", help="Subcommand to run")

    # Test-connection command
    test_parser = subparsers.add_parser("test-connection", help="Connect and ping the data source")
    test_parser.add_argument("--settings", required=True, help="Path to settings JSON/YAML file")

    # Discover command
    discover_parser = subparsers.add_parser("discover", help="Refresh shapes from their queries")
    discover_parser.add_argument("--settings", required=True, help="Path to settings JSON/YAML file")
    discover_parser.add_argument("--shapes", required=True, help="Path to a JSON file with one shape or a list of shapes")
    discover_parser.add_argument("--sample-size", type=int, default=0, help="Number of sample records per shape")

    # Publish command
    publish_parser = subparsers.add_parser("publish", help="Stream records for a shape as JSON lines")
    publish_parser.add_argument("--settings", required=True, help="Path to settings JSON/YAML file")
    publish_parser.add_argument("--shape", required=True, help="Path to a JSON file with the shape to publish")
    publish_parser.add_argument("--limit", type=int, default=0, help="Maximum number of records (0 for all)")

    args = parser.parse_args(argv)

    handlers = {
        "test-connection": cmd_test_connection,
        "discover": cmd_discover,
        "publish": cmd_publish,
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    sys.exit(handler(args, Server()))


if __name__ == "__main__":
    main()
