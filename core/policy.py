# core/policy.py
from typing import Final
from model.proxy import ProxyAction, ProxyPlan, ProxyRequest, WorkerConfig

STATIC_PREFIXES: Final[tuple[str, ...]] = ("/assets/", "/logo")
STATIC_EXTENSIONS: Final[tuple[str, ...]] = (".css", ".js", ".png", ".jpg", ".webp", ".svg")


def is_navigation(request: ProxyRequest) -> bool:
    """
    Explicit mode wins; otherwise trust Sec-Fetch-Mode, then fall back to a GET
    whose Accept header prefers HTML (older clients send no fetch metadata).
    """
    if request.is_navigation:
        return True
    fetch_mode = request.header("sec-fetch-mode")
    if fetch_mode:
        return fetch_mode.lower() == "navigate"
    accept = request.header("accept").lower()
    return request.method.upper() == "GET" and accept.startswith("text/html")


def is_static_asset(request: ProxyRequest, config: WorkerConfig) -> bool:
    if request.origin != config.origin.rstrip("/"):
        return False
    path = request.path
    return path.startswith(STATIC_PREFIXES) or path.endswith(STATIC_EXTENSIONS)


def decide(request: ProxyRequest, config: WorkerConfig) -> ProxyPlan:
    """
    Pure per-request policy. No I/O: the worker executes the returned plan.

    1. non-GET, or the worker itself runs on a dev host -> pass-through
    2. navigation -> network, fall back to the cached shell document
    3. same-origin static asset -> cache first, fetch-then-cache on miss
    4. everything else -> network, mirror into runtime, runtime on failure
    """
    parts = config.partitions

    if request.method.upper() != "GET" or config.host in config.dev_hosts:
        return ProxyPlan(action=ProxyAction.PASS_THROUGH)

    if is_navigation(request):
        return ProxyPlan(
            action=ProxyAction.FETCH_WITH_CACHE_FALLBACK,
            partition=parts.static,
            fallback_key=config.absolute(config.shell_document),
        )

    if is_static_asset(request, config):
        return ProxyPlan(
            action=ProxyAction.SERVE_CACHE,
            partition=parts.static,
            fallback_key=request.cache_key,
            store_response=True,
        )

    return ProxyPlan(
        action=ProxyAction.FETCH_WITH_CACHE_FALLBACK,
        partition=parts.runtime,
        fallback_key=request.cache_key,
        store_response=True,
    )


def on_cache_miss(plan: ProxyPlan) -> ProxyPlan:
    """A serve-cache plan that found nothing degrades to fetch-then-cache."""
    if plan.action is not ProxyAction.SERVE_CACHE:
        return plan
    return plan.model_copy(update={"action": ProxyAction.FETCH_THEN_CACHE})
