"""jx-auth: server and user credential configuration for Jenkins X tooling."""

__version__ = "0.1.0"
