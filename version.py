"""
Version information for NetDisco Sync.
"""

MAJOR = 1
MINOR = 0
PATCH = 0
STATUS = "Beta"

# Collection wire format written to the shared store
WIRE_FORMAT_VERSION = "1"


def get_version() -> str:
    """Get the full version string."""
    return f"{MAJOR}.{MINOR}.{PATCH}-{STATUS}"


def get_version_tuple() -> tuple:
    """Get version as tuple (major, minor, patch)."""
    return (MAJOR, MINOR, PATCH)


def get_full_info() -> dict:
    """Get complete version information."""
    return {
        "version": get_version(),
        "major": MAJOR,
        "minor": MINOR,
        "patch": PATCH,
        "status": STATUS,
        "wire_format": WIRE_FORMAT_VERSION,
    }


__version__ = get_version()
