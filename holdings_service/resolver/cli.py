import json
import sys
from .core import default_resolver, as_dict


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m holdings_service.resolver.cli <company name>")
        sys.exit(2)
    name = " ".join(sys.argv[1:])
    print(json.dumps(as_dict(default_resolver(), name), indent=2))


if __name__ == "__main__":
    main()
