"""txt-timer: relay a text stream and report the largest delays between lines.

Each line is passed through unchanged. Delays are measured on arrival with a
monotonic clock, or taken from a timestamp embedded in the line. At the end
of the stream the largest delays are printed, each with the lines that led
up to it.
"""

__all__ = [
    "config",
    "core",
    "main",
    "relay",
    "render",
    "utils",
]
