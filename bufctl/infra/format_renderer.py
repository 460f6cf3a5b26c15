import json

import yaml

from bufctl.core.ports.render import Renderer


def normalize(obj):
    """Make decoded values printable: bytes become hex strings."""
    if isinstance(obj, (bytes, bytearray)):
        return bytes(obj).hex()

    if isinstance(obj, dict):
        return {normalize(k): normalize(v) for k, v in obj.items()}

    if isinstance(obj, (list, tuple)):
        return [normalize(x) for x in obj]

    return obj


class JsonRenderer(Renderer):
    def render(self, data: dict) -> str:
        return json.dumps(normalize(data), indent=2, sort_keys=False)


class YamlRenderer(Renderer):
    def render(self, data: dict) -> str:
        return yaml.safe_dump(normalize(data), sort_keys=False, allow_unicode=True)
