"""
tpu-doc CLI subcommand package.

Every module in this package (excluding those starting with underscores) must
provide a `register_subcommand(subparsers)` function, return the parser object,
and call `parser.set_defaults(func=run)` so the main CLI knows which handler to
execute. The discovery logic in `tpudoc.cli.main` imports each module and
registers the associated command automatically.
"""

__all__ = []
