import pytest

from cr_common.models.target import RenderContext


@pytest.fixture
def render_context() -> RenderContext:
    return RenderContext(
        cloud="gce",
        group="us-east1",
        cluster="cldrprt27-n2-standard-8-1234",
        lifetime="24h",
        machine_type="n2-standard-8",
        scripts_dir="./scripts",
        bench_args={"tpcc": "-W 2500", "disk": "2500"},
    )
