"""Enumerations shared across the TurfOps packages (see ``lawn_taxonomy``)."""
