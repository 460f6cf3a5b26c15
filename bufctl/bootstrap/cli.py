import sys

from bufctl.bootstrap.deps import get_cli
from bufferlink.bootstrap.deps import get_config
from bufferlink.core.helpers.utils import scan, setup_logging


@scan("bufctl.bootstrap.commands")
def main() -> None:
    cli = get_cli()
    namespace = cli.parse_args()
    setup_logging(namespace.log_level or get_config().log_level)

    sys.exit(cli.run())


if __name__ == "__main__":
    main()
