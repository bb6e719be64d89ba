"""ContentGem plugin backend — FastAPI application entry point.

Serves the editor's actions (generate, poll, publish drafts, company
profile) and forwards them to the ContentGem generation service, gated by
the caller's subscription tier.
"""

from contextlib import asynccontextmanager
from typing import Any
from urllib.parse import urlparse

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from contentgem.access.gate import AccessGate
from contentgem.access.models import AccessDeniedError
from contentgem.api.client import ContentGemClient
from contentgem.cache.factory import get_cache_store
from contentgem.config.settings import get_settings
from contentgem.generation.service import ContentGenerator, GenerationError
from contentgem.logging.audit import (
    generate_request_id,
    get_audit_logger,
    request_id_var,
    setup_logging,
)
from contentgem.posts.store import (
    GENERATED_CONTENT_META,
    PostStore,
    get_post_store,
    sanitize_post_content,
    sanitize_text,
)
from contentgem.security.auth import (
    API_PATH_PREFIX,
    request_context,
    resolve_caller,
    verify_action_nonce,
)
from contentgem.security.nonce import ACTION_SCOPE, create_nonce
from contentgem.users.models import CallerIdentity, RequestContext

VERSION = "1.0.0"

EDIT_CAPABILITY = "edit_posts"
ADMIN_CAPABILITY = "manage_options"

_client: ContentGemClient | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    setup_logging()
    get_audit_logger().info("ContentGem backend started")
    yield
    await close_client()
    get_audit_logger().info("ContentGem backend stopped")


app = FastAPI(
    title="ContentGem AI",
    description="Subscription-gated AI content generation for editorial users",
    version=VERSION,
    lifespan=lifespan,
)


@app.exception_handler(AccessDeniedError)
async def access_denied_handler(request: Request, exc: AccessDeniedError):
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError):
    status_code = exc.status_code if exc.status_code >= 400 else 502
    return JSONResponse(status_code=status_code, content={"success": False, "data": exc.message})


@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    rid = generate_request_id()
    token = request_id_var.set(rid)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-Id"] = rid
    return response


# --- Dependencies ---


def get_client() -> ContentGemClient:
    """Ungated client singleton."""
    global _client
    if _client is None:
        _client = ContentGemClient(get_settings())
    return _client


async def close_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None


def get_gate(client: ContentGemClient = Depends(get_client)) -> AccessGate:
    return AccessGate(client, get_cache_store())


async def require_editor(
    caller: CallerIdentity = Depends(verify_action_nonce),
    gate: AccessGate = Depends(get_gate),
) -> CallerIdentity:
    enforcement = await gate.require_access(caller, EDIT_CAPABILITY)
    if not enforcement.allowed:
        raise AccessDeniedError(enforcement.status_code, enforcement.denial)
    return caller


def require_admin(caller: CallerIdentity = Depends(resolve_caller)) -> CallerIdentity:
    if not caller.can(ADMIN_CAPABILITY):
        raise AccessDeniedError(403, {
            "success": False,
            "message": "You do not have sufficient permissions to access this page.",
        })
    return caller


def get_generator(
    caller: CallerIdentity = Depends(require_editor),
    context: RequestContext = Depends(request_context),
    client: ContentGemClient = Depends(get_client),
    gate: AccessGate = Depends(get_gate),
) -> ContentGenerator:
    return ContentGenerator(client.with_guard(gate.guard_for(caller, context)))


async def action_params(request: Request) -> dict[str, Any]:
    try:
        params = await request.json()
    except ValueError:
        params = None
    if not isinstance(params, dict):
        raise GenerationError("Request body must be a JSON object", status_code=400)
    return params


def success(data: Any) -> dict:
    return {"success": True, "data": data}


def error(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "data": message})


def _text(params: dict, key: str) -> str:
    value = params.get(key)
    return sanitize_text(value) if isinstance(value, str) else ""


def _mapping(params: dict, key: str) -> dict:
    value = params.get(key)
    return value if isinstance(value, dict) else {}


# --- Routes ---


# Editor actions; the nonce is checked before any route dependency or body parsing
actions = APIRouter(dependencies=[Depends(verify_action_nonce)])


@app.get("/health")
async def health():
    return {"status": "healthy", "version": VERSION}


@app.get("/nonce")
async def issue_nonce(caller: CallerIdentity = Depends(resolve_caller)):
    return {"nonce": create_nonce(caller.user_id, ACTION_SCOPE)}


@actions.post("/generate-content")
async def generate_content(
    generator: ContentGenerator = Depends(get_generator),
    params: dict = Depends(action_params),
):
    prompt = params.get("prompt")
    if not isinstance(prompt, str) or not prompt.strip():
        return error("Prompt is required")

    keywords = params.get("keywords") or []
    if isinstance(keywords, str):
        keywords = [k.strip() for k in keywords.split(",") if k.strip()]

    result = await generator.generate_content(prompt.strip(), _mapping(params, "company_info"), keywords)
    return success(result)


@actions.post("/check-status")
async def check_status(
    generator: ContentGenerator = Depends(get_generator),
    params: dict = Depends(action_params),
):
    session_id = _text(params, "session_id")
    if not session_id:
        return error("Session ID is required")
    return success(await generator.check_status(session_id))


@actions.post("/save-post")
async def save_post(
    caller: CallerIdentity = Depends(require_editor),
    params: dict = Depends(action_params),
    posts: PostStore = Depends(get_post_store),
):
    title = _text(params, "title")
    raw_content = params.get("content")
    content = sanitize_post_content(raw_content) if isinstance(raw_content, str) else ""
    if not title or not content.strip():
        return error("Title and content are required")

    try:
        category_id = int(params.get("category_id") or get_settings().default_category_id)
    except (TypeError, ValueError):
        category_id = get_settings().default_category_id

    post = await posts.insert_draft(title, content, category_id)
    await posts.set_meta(post.post_id, GENERATED_CONTENT_META, content)

    get_audit_logger().info(
        "Draft saved",
        extra={"audit_data": {"caller_id": caller.user_id, "post_id": post.post_id}},
    )
    return success({"post_id": post.post_id, "edit_url": posts.edit_url(post.post_id)})


@actions.post("/bulk-generate")
async def bulk_generate(
    generator: ContentGenerator = Depends(get_generator),
    params: dict = Depends(action_params),
):
    prompts = params.get("prompts")
    if not prompts or not isinstance(prompts, list):
        return error("Prompts array is required")

    result = await generator.bulk_generate_content(
        prompts, _mapping(params, "company_info"), _mapping(params, "common_settings")
    )
    return success(result)


@actions.post("/check-bulk-status")
async def check_bulk_status(
    generator: ContentGenerator = Depends(get_generator),
    params: dict = Depends(action_params),
):
    bulk_session_id = _text(params, "bulk_session_id")
    if not bulk_session_id:
        return error("Bulk session ID is required")
    return success(await generator.check_bulk_status(bulk_session_id))


@actions.post("/get-company-info")
async def get_company_info(generator: ContentGenerator = Depends(get_generator)):
    return success(await generator.get_company_info())


@actions.post("/update-company-info")
async def update_company_info(
    generator: ContentGenerator = Depends(get_generator),
    params: dict = Depends(action_params),
):
    company_data = _mapping(params, "company_data")
    if not company_data:
        return error("Company data is required")
    return success(await generator.update_company_info(company_data))


@actions.post("/parse-company-website")
async def parse_company_website(
    generator: ContentGenerator = Depends(get_generator),
    params: dict = Depends(action_params),
):
    website_url = params.get("website_url")
    website_url = website_url.strip() if isinstance(website_url, str) else ""
    parsed = urlparse(website_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return error("Website URL is required")
    return success(await generator.parse_company_website(website_url))


# Same actions on an AJAX-style path and a REST-style path; the latter marks
# the request context as an API call for the trust classifier
app.include_router(actions, prefix="/actions")
app.include_router(actions, prefix=API_PATH_PREFIX + "actions")


@app.get("/subscription")
async def subscription_status(
    caller: CallerIdentity = Depends(require_admin),
    gate: AccessGate = Depends(get_gate),
):
    return await gate.get_subscription_info(caller)


@app.post("/subscription/clear-cache")
async def clear_subscription_cache(
    caller: CallerIdentity = Depends(verify_action_nonce),
    gate: AccessGate = Depends(get_gate),
):
    if not caller.can(ADMIN_CAPABILITY):
        raise AccessDeniedError(403, {
            "success": False,
            "message": "You do not have sufficient permissions to access this page.",
        })
    await gate.clear_cache(caller.user_id)
    return success({"message": "Cache cleared successfully."})


@app.get("/connection/test")
async def test_connection(
    caller: CallerIdentity = Depends(require_admin),
    client: ContentGemClient = Depends(get_client),
):
    # Diagnostics stay ungated so admins can troubleshoot a failing subscription
    result = await client.test_connection()
    return result.to_dict()
