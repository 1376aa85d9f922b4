"""Tests for driver script generation."""

from __future__ import annotations

import ast
import os
import stat
from pathlib import Path

import pytest
from jinja2 import Environment, StrictUndefined

from cr_common.errors import ArgumentEvaluationError, ScriptGenerationError, TemplateRenderError
from cr_common.models.target import RenderContext
from cr_generator.identity import cluster_identity
from cr_generator.models.config import ReportConfig
from cr_generator.renderer import ScriptRenderer, generate_scripts, load_driver_template


pytestmark = pytest.mark.unit_generator


def _config(tmp_path: Path, **machine_overrides) -> ReportConfig:
    machine = {
        "roachprod_args": {"gce-pd-volume-size": "{{ bench_args.disk }}"},
        "bench_args": {"disk": "2500"},
    }
    machine.update(machine_overrides)
    return ReportConfig.model_validate(
        {
            "report_version": "v1",
            "output_root": str(tmp_path / "report-data"),
            "clouds": [
                {
                    "cloud": "gce",
                    "group": "us-east1",
                    "roachprod_args": {"gce-zones": "us-east1-b", "local-ssd": ""},
                    "bench_args": {"tpcc": "-W 3500", "disk": "100"},
                    "machine_types": {"n2-standard-8": machine, "c2.standard.4": None},
                }
            ],
        }
    )


def _embedded_context(script: Path) -> RenderContext:
    tree = ast.parse(script.read_text(encoding="utf-8"))
    for node in tree.body:
        if isinstance(node, ast.Assign) and node.targets[0].id == "CONTEXT_JSON":
            return RenderContext.model_validate_json(ast.literal_eval(node.value))
    raise AssertionError("CONTEXT_JSON not found")


def test_generate_writes_executable_script_per_machine(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    scripts = ScriptRenderer(cfg, "./scripts", "12h", year=2022).generate()

    script_dir = tmp_path / "report-data" / "v1" / "gce" / "scripts"
    assert (tmp_path / "report-data" / "v1" / "gce" / "logs").is_dir()
    assert [s.path for s in scripts] == [
        script_dir / "c2-standard-4.py",
        script_dir / "n2-standard-8.py",
    ]
    for script in scripts:
        mode = stat.S_IMODE(os.stat(script.path).st_mode)
        assert mode == 0o755
        assert script.path.read_text().startswith("#!/usr/bin/env python3\n")


def test_generated_script_embeds_resolved_context(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    ScriptRenderer(cfg, "./scripts", "12h", year=2022).generate()
    script = tmp_path / "report-data" / "v1" / "gce" / "scripts" / "n2-standard-8.py"

    context = _embedded_context(script)
    assert context.cluster == cluster_identity("gce", "us-east1", "v1", "n2-standard-8", 2022)
    assert context.lifetime == "12h"
    assert context.bench_args == {"tpcc": "-W 3500", "disk": "2500"}
    assert context.deployment_flags == (
        '--gce-pd-volume-size="2500" --gce-zones="us-east1-b" --local-ssd'
    )
    assert "from cr_controller.driver import run_driver" in script.read_text()


def test_machine_without_overrides_inherits_cloud_args(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    ScriptRenderer(cfg, year=2022).generate()
    script = tmp_path / "report-data" / "v1" / "gce" / "scripts" / "c2-standard-4.py"
    context = _embedded_context(script)
    assert context.bench_args == {"tpcc": "-W 3500", "disk": "100"}
    assert context.deployment_flags == '--gce-zones="us-east1-b" --local-ssd'


def test_non_bmp_bench_args_survive_embedding(tmp_path: Path) -> None:
    cfg = _config(tmp_path, bench_args={"disk": "2500", "tpcc": "note \U0001F600 <&>"})
    ScriptRenderer(cfg, year=2022).generate()
    script = tmp_path / "report-data" / "v1" / "gce" / "scripts" / "n2-standard-8.py"
    source = script.read_text(encoding="utf-8")
    compile(source, str(script), "exec")
    context = _embedded_context(script)
    assert context.bench_args["tpcc"] == "note \U0001F600 <&>"
    context.model_dump_json().encode("utf-8")


def test_generate_truncates_previous_content(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    script_dir = tmp_path / "report-data" / "v1" / "gce" / "scripts"
    script_dir.mkdir(parents=True)
    stale = script_dir / "n2-standard-8.py"
    stale.write_text("STALE\n" * 5000)

    ScriptRenderer(cfg, year=2022).generate()
    assert "STALE" not in stale.read_text()


def test_directory_failure_aborts_generation(tmp_path: Path) -> None:
    blocker = tmp_path / "report-data"
    blocker.write_text("not a directory")
    cfg = _config(tmp_path)
    with pytest.raises(ScriptGenerationError):
        ScriptRenderer(cfg).generate()


def test_bad_templated_argument_aborts_generation(tmp_path: Path) -> None:
    cfg = _config(tmp_path, roachprod_args={"gce-pd-volume-size": "{{ bench_args.nope }}"})
    with pytest.raises(ArgumentEvaluationError) as excinfo:
        ScriptRenderer(cfg).generate()
    assert "gce-pd-volume-size" in str(excinfo.value)
    assert excinfo.value.argument == "gce-pd-volume-size"
    assert not (tmp_path / "report-data" / "v1" / "gce" / "scripts" / "n2-standard-8.py").exists()


def test_template_render_failure_is_fatal(tmp_path: Path) -> None:
    broken = Environment(undefined=StrictUndefined).from_string("{{ nothing_here }}")
    renderer = ScriptRenderer(_config(tmp_path), template=broken)
    with pytest.raises(TemplateRenderError):
        renderer.generate()


def test_malformed_template_file_is_fatal(tmp_path: Path) -> None:
    template_dir = tmp_path / "templates"
    template_dir.mkdir()
    (template_dir / "driver.py.j2").write_text("{% if %}")
    with pytest.raises(TemplateRenderError):
        load_driver_template(template_dir)


def test_generate_scripts_honours_output_root_override(tmp_path: Path) -> None:
    cfg = _config(tmp_path)
    scripts = generate_scripts(cfg, "./bench-scripts", output_root=tmp_path / "elsewhere")
    assert {s.path.parent for s in scripts} == {tmp_path / "elsewhere" / "v1" / "gce" / "scripts"}
    assert _embedded_context(scripts[0].path).scripts_dir == "./bench-scripts"
    assert not (tmp_path / "report-data").exists()
