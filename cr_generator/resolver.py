"""Layered argument merging and templated argument evaluation."""

from __future__ import annotations

import json
import logging
from typing import Dict, Mapping, Optional

from jinja2 import Environment, StrictUndefined, TemplateError

from cr_common.errors import ArgumentEvaluationError
from cr_common.models.target import RenderContext

logger = logging.getLogger(__name__)

_ARG_ENV = Environment(undefined=StrictUndefined, keep_trailing_newline=True, autoescape=False)


def combine_args(
    target_args: Optional[Dict[str, str]], base_args: Dict[str, str]
) -> Dict[str, str]:
    """Specialize ``base_args`` with ``target_args``.

    Keys present in ``target_args`` win. Keys only in ``base_args`` are copied
    into ``target_args`` in place and the same mapping is returned, so callers
    must not reuse ``target_args`` for an unrelated merge afterwards.
    """
    if target_args is None:
        return base_args
    for arg, val in base_args.items():
        if arg not in target_args:
            target_args[arg] = val
    return target_args


def evaluate_args(args: Mapping[str, str], context: RenderContext) -> Dict[str, str]:
    """Render every argument value as a template against ``context``."""
    template_vars = context.template_vars()
    evaluated: Dict[str, str] = {}
    for arg, val in args.items():
        try:
            evaluated[arg] = _ARG_ENV.from_string(val).render(template_vars)
        except TemplateError as exc:
            raise ArgumentEvaluationError(
                f"error evaluating arg {arg}: {exc}",
                context={"argument": arg, "value": val, "cluster": context.cluster},
                cause=exc,
            )
    return evaluated


def format_deployment_args(evaluated: Mapping[str, str]) -> str:
    """Render evaluated arguments as command-line flags.

    An empty value yields a bare ``--name``; anything else ``--name="value"``.
    """
    flags = []
    for arg in sorted(evaluated):
        val = evaluated[arg]
        if val:
            flags.append(f"--{arg}={json.dumps(val, ensure_ascii=False)}")
        else:
            flags.append(f"--{arg}")
    return " ".join(flags)


def resolve_target(
    context: RenderContext,
    machine_args: Optional[Dict[str, str]],
    cloud_args: Dict[str, str],
) -> RenderContext:
    """Return ``context`` with its deployment arguments evaluated and rendered."""
    combined = combine_args(
        dict(machine_args) if machine_args is not None else None, dict(cloud_args)
    )
    evaluated = evaluate_args(combined, context)
    flags = format_deployment_args(evaluated)
    logger.debug("Resolved deployment args for %s: %s", context.cluster, flags)
    return context.model_copy(
        update={"deployment_args": evaluated, "deployment_flags": flags}
    )
