"""Services used by the capability controllers."""
