"""Generate one executable driver script per cloud and machine shape."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template, TemplateError

from cr_common.errors import ScriptGenerationError, TemplateRenderError
from cr_common.models.target import RenderContext
from cr_generator.identity import cluster_identity, format_machine_type
from cr_generator.models.config import CloudConfig, MachineConfig, ReportConfig
from cr_generator.resolver import combine_args, resolve_target

logger = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"
DRIVER_TEMPLATE = "driver.py.j2"
SCRIPT_MODE = 0o755


@dataclass(frozen=True)
class GeneratedScript:
    """A driver script written for one target."""

    cloud: str
    machine_type: str
    cluster: str
    path: Path


def make_all_dirs(*dirs: Path) -> None:
    """Create every directory, failing on the first error."""
    for directory in dirs:
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ScriptGenerationError(
                f"Unable to create directory {directory}: {exc}",
                context={"path": directory},
                cause=exc,
            )


def load_driver_template(
    template_dir: Path = TEMPLATE_DIR, name: str = DRIVER_TEMPLATE
) -> Template:
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    try:
        return env.get_template(name)
    except TemplateError as exc:
        raise TemplateRenderError(
            f"Unable to load driver template {name}: {exc}",
            context={"template_dir": template_dir, "template": name},
            cause=exc,
        )


class ScriptRenderer:
    """Render driver scripts for every target in a report configuration."""

    def __init__(
        self,
        config: ReportConfig,
        scripts_dir: str = "./scripts",
        lifetime: str = "24h",
        *,
        output_root: Optional[Path] = None,
        year: Optional[int] = None,
        template: Optional[Template] = None,
    ) -> None:
        self.config = config
        self.scripts_dir = scripts_dir
        self.lifetime = lifetime
        self.output_root = Path(output_root) if output_root else Path(config.output_root)
        self.year = year if year is not None else datetime.now().year
        self._template = template

    @property
    def template(self) -> Template:
        if self._template is None:
            self._template = load_driver_template()
        return self._template

    def generate(self) -> List[GeneratedScript]:
        """Generate scripts for all clouds; the first failure aborts the run."""
        scripts: List[GeneratedScript] = []
        for cloud in self.config.clouds:
            scripts.extend(self.generate_cloud(cloud))
        return scripts

    def generate_cloud(self, cloud: CloudConfig) -> List[GeneratedScript]:
        version = self.config.report_version
        base_path = cloud.base_path(self.output_root, version)
        script_dir = cloud.script_dir(self.output_root, version)
        log_dir = cloud.log_dir(self.output_root, version)
        make_all_dirs(base_path, script_dir, log_dir)

        generated: List[GeneratedScript] = []
        for machine_type in sorted(cloud.machine_types):
            machine = cloud.machine_types[machine_type]
            context = self.build_context(cloud, machine_type, machine)
            path = script_dir / f"{format_machine_type(machine_type)}.py"
            self.write_script(path, context)
            logger.info("Generated %s (cluster %s)", path, context.cluster)
            generated.append(
                GeneratedScript(
                    cloud=cloud.cloud,
                    machine_type=machine_type,
                    cluster=context.cluster,
                    path=path,
                )
            )
        return generated

    def build_context(
        self,
        cloud: CloudConfig,
        machine_type: str,
        machine: MachineConfig,
    ) -> RenderContext:
        cluster = cluster_identity(
            cloud.cloud, cloud.group, self.config.report_version, machine_type, self.year
        )
        bench_args = combine_args(
            dict(machine.bench_args) if machine.bench_args is not None else None,
            dict(cloud.bench_args),
        )
        context = RenderContext(
            cloud=cloud.cloud,
            group=cloud.group,
            cluster=cluster,
            lifetime=self.lifetime,
            machine_type=machine_type,
            scripts_dir=self.scripts_dir,
            bench_args=bench_args,
        )
        return resolve_target(context, machine.roachprod_args, cloud.roachprod_args)

    def render(self, context: RenderContext) -> str:
        try:
            return self.template.render(
                cloud=context.cloud,
                machine_type=context.machine_type,
                cluster=context.cluster,
                context_literal=repr(context.model_dump_json()),
            )
        except TemplateError as exc:
            raise TemplateRenderError(
                f"Unable to render driver template for {context.machine_type}: {exc}",
                context={"cloud": context.cloud, "machine_type": context.machine_type},
                cause=exc,
            )

    def write_script(self, path: Path, context: RenderContext) -> None:
        content = self.render(context)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, SCRIPT_MODE)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            os.chmod(path, SCRIPT_MODE)
        except OSError as exc:
            raise ScriptGenerationError(
                f"Unable to write script {path}: {exc}",
                context={"path": path},
                cause=exc,
            )


def generate_scripts(
    config: ReportConfig,
    scripts_dir: str = "./scripts",
    lifetime: str = "24h",
    *,
    output_root: Optional[Path] = None,
) -> List[GeneratedScript]:
    """Convenience wrapper around :class:`ScriptRenderer`."""
    return ScriptRenderer(
        config, scripts_dir, lifetime, output_root=output_root
    ).generate()


def iter_targets(config: ReportConfig) -> Iterable[tuple[CloudConfig, str]]:
    for cloud in config.clouds:
        for machine_type in sorted(cloud.machine_types):
            yield cloud, machine_type
