"""threatflow CLI - build data flow diagrams from code facts.

Uses tyro for type-driven CLI generation from dataclasses.
"""

from __future__ import annotations

from typing import Annotated

import tyro

from threatflow.cli.commands.analyze import Analyze
from threatflow.cli.commands.summary import Summary

_Analyze = Annotated[Analyze, tyro.conf.subcommand("analyze")]
_Summary = Annotated[Summary, tyro.conf.subcommand("summary")]

Command = _Analyze | _Summary


def main(args: list[str] | None = None) -> int:
    """Entry point for the CLI."""
    # configure structlog (respects THREATFLOW_DEBUG env var)
    from threatflow.logging_config import configure_logging

    configure_logging()

    try:
        cmd = tyro.cli(
            Command,
            args=args,
            prog="threatflow",
            description="Infer data flow diagrams for threat modeling.",
        )
        return cmd.run()
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        from threatflow import console

        console.error(str(e))
        return 1
