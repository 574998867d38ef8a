"""Replica storage backends and a terminal dashboard for Paxos-style replicated logs."""

__version__ = "0.1.0"

__all__ = ["__version__"]