"""Command-line entry points for running simulations."""
