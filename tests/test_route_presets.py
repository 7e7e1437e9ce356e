from routespec.builder.output import DetailedOutput, SimpleOutput
from routespec.builder.route import RouteBuilder
from routespec.schema import factory as s

NOW = "2024-01-01T00:00:00Z"
JOB_ID = "7c9e6679-7425-40de-944b-e07fc1f90ae7"


def test_health():
    c = RouteBuilder.health().build()
    assert (c.route.method, c.route.path) == ("GET", "/health")
    assert c.route.tags == ("health",)
    assert c.input.validate({}) == {}
    assert c.output_schema.validate({"status": "healthy", "timestamp": NOW})["status"] == "healthy"
    assert not c.output_schema.is_valid({"status": "sleepy", "timestamp": NOW})


def test_ready_and_live():
    ready = RouteBuilder.ready().build()
    assert ready.route.path == "/ready"
    assert ready.output_schema.validate({"ready": True, "checks": {"db": True}}) == {
        "ready": True,
        "checks": {"db": True},
    }
    live = RouteBuilder.live().build()
    assert live.route.path == "/live"
    assert live.output_schema.is_valid({"alive": True})


def test_health_presets_accept_a_path():
    assert RouteBuilder.health("/healthz").build().route.path == "/healthz"
    assert RouteBuilder.ready(path="/readyz").build().route.path == "/readyz"
    live = RouteBuilder.live(path="/livez").build()
    assert live.route.path == "/livez"
    assert live.output_schema.is_valid({"alive": True})


def test_presets_keep_chaining():
    c = RouteBuilder.health().tags("ops").summary("Ping").build()
    assert c.route.tags == ("health", "ops")
    assert c.route.summary == "Ping"


def test_check_exists():
    c = RouteBuilder.check_exists(s.obj(email=str)).build()
    assert (c.route.method, c.route.path) == ("POST", "/check-exists")
    assert c.output_schema.validate({"exists": False}) == {"exists": False}


def test_action_paths():
    named = RouteBuilder.action(s.obj(a=int), s.obj(ok=bool), action_name="recalculate").build()
    assert (named.route.method, named.route.path) == ("POST", "/recalculate")
    assert named.route.summary == "Execute recalculate"
    assert RouteBuilder.action(s.obj(a=int), s.obj(ok=bool)).build().route.path == "/action"


def test_trigger_job():
    c = RouteBuilder.trigger_job(s.obj(kind=str)).build()
    assert (c.route.method, c.route.path) == ("POST", "/jobs/trigger")
    assert c.input == s.obj(kind=str)
    assert c.output_schema.is_valid({"jobId": JOB_ID, "status": "queued"})


def test_job_status_declares_job_id_param():
    c = RouteBuilder.job_status(s.obj(url=str)).build()
    assert c.route.path == "/jobs/{jobId}/status"
    assert list(c.input.params.shape) == ["jobId"]
    assert c.output_schema.is_valid({"jobId": JOB_ID, "status": "completed", "result": {"url": "x"}})
    assert not c.output_schema.is_valid({"jobId": JOB_ID, "status": "completed", "progress": 101})


def test_stream_job_progress_streams_chunks():
    c = RouteBuilder.stream_job_progress().build()
    assert c.route.path == "/jobs/{jobId}/progress"
    assert isinstance(c.output, DetailedOutput)
    assert c.output.status == 200
    assert list(c.output.body.validate(iter([{"progress": 50}]))) == [{"progress": 50.0}]


def test_upload_and_download():
    up = RouteBuilder.upload().build()
    assert (up.route.method, up.route.path) == ("POST", "/upload")
    assert up.input.is_valid({"file": object()})

    down = RouteBuilder.download().build()
    assert down.route.path == "/download/{fileId}"
    assert list(down.input.params.shape) == ["fileId"]


def test_webhook():
    payload = s.obj(event=str)
    c = RouteBuilder.webhook(payload).build()
    assert (c.route.method, c.route.path) == ("POST", "/webhook")
    assert c.input == payload
    assert c.output_schema.is_valid({"received": True, "processedAt": NOW})


def test_metrics_config_version():
    metrics = RouteBuilder.metrics().build()
    assert metrics.output_schema.is_valid({"metrics": [{"name": "rps", "value": 3}], "timestamp": NOW})

    settings = s.obj(theme=str)
    assert RouteBuilder.config(settings).build().output == SimpleOutput(settings)

    version = RouteBuilder.version().build()
    assert version.route.path == "/version"
    assert version.output_schema.validate({"version": "1.0.0"}) == {"version": "1.0.0"}
