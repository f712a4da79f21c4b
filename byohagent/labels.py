"""Label flag values of the form ``key=value``."""

from __future__ import annotations


def _split_pair(pair: str, original: str) -> tuple[str, str]:
    key, sep, value = pair.partition("=")
    if not sep:
        raise ValueError(f"invalid argument value. expect key=value, got {original}")
    return key.strip(), value.strip()


class LabelFlags(dict):
    """Labels gathered from one or more ``--label`` options."""

    def set(self, value: str) -> None:
        """Add ``key=value`` pairs; several may be given comma separated."""
        pairs = value.split(",")
        if len(pairs) > 1:
            for pair in pairs:
                if pair:
                    key, val = _split_pair(pair, value)
                    self[key] = val
        else:
            key, val = _split_pair(value, value)
            self[key] = val

    def __str__(self) -> str:
        return ",".join(f"{key}={value}" for key, value in self.items())