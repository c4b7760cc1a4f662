from datetime import datetime, timedelta, timezone
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.templating import Jinja2Templates
from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel, Field, ValidationError
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

import cms as queries
import projects as listing
import zero_trust
from cache import PageCache
from cats import RATE_LIMITED_IMAGE, CatApi, CatApiError
from cms import ContentError, SanityClient, get_cms
from config import get_settings
from contact import CaptchaVerifier, Mailer, relay_contact
from images import blur_url, build_image, urlfor
from logging_config import LoggingConfig
from pagination import LoadMoreFeed, page_window
from portable_text import code_styles, excerpt, render
from schemas import (
    DOCUMENT_TYPES,
    AboutSettings,
    ContactSettings,
    Education,
    HomeSettings,
    LegalPage,
    PersonalActivity,
    Post,
    ProfessionalExperience,
    Project,
    ProjectCategory,
    desk_structure,
)

LoggingConfig.configure()
logger = LoggingConfig.get_logger(__name__)

BASE_DIR = Path(__file__).resolve().parent

# =====================
# Auth / Security Setup
# =====================
ALGORITHM = "HS256"

# Use pbkdf2_sha256 to avoid external bcrypt dependency issues
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


@lru_cache()
def admin_password_hash() -> str:
    # Support providing a precomputed hash; otherwise hash the configured password
    settings = get_settings()
    return settings.admin_password_hash or pwd_context.hash(settings.admin_password)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    email: str
    password: str


class RevalidateRequest(BaseModel):
    path: Optional[str] = None


class CatsQuery(BaseModel):
    limit: int = Field(default=1, ge=1, le=25)


class VoteRequest(BaseModel):
    image_id: Any
    value: Any


# ==================
# FastAPI app config
# ==================
app = FastAPI(title="ebox86 site")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

templates = Jinja2Templates(directory=str(BASE_DIR / "templates"))


def _date(value: Any, fmt: str = "%a %b %d %Y") -> str:
    if not value:
        return ""
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return value.strftime(fmt)


templates.env.filters["date"] = _date
templates.env.filters["portable_text"] = render
templates.env.filters["excerpt"] = excerpt
templates.env.globals.update(
    build_image=build_image,
    urlfor=urlfor,
    blur_url=blur_url,
    tone=listing.tone,
    code_styles=code_styles,
    rate_limited_image=RATE_LIMITED_IMAGE,
)

SOCIAL_REDIRECTS = {
    "linkedin": "https://www.linkedin.com/in/evan-kohout/",
    "github": "https://github.com/ebox86",
    "x": "https://twitter.com/ebox86",
    "twitter": "https://twitter.com/ebox86",
}

STATIC_PATHS = ["/", "/blog", "/projects", "/me", "/contact", "/terms", "/privacy", "/zt", "/zt/enroll", "/zt/support"]


# ============
# Dependencies
# ============
page_cache = PageCache(get_settings().revalidate_seconds)


def get_page_cache() -> PageCache:
    return page_cache


@lru_cache()
def get_cat_api() -> CatApi:
    settings = get_settings()
    return CatApi(settings.cat_api_url, settings.cat_api_key, settings.http_timeout_seconds)


@lru_cache()
def get_captcha_verifier() -> Optional[CaptchaVerifier]:
    settings = get_settings()
    if not settings.captcha_secret:
        return None
    return CaptchaVerifier(settings.captcha_secret, settings.captcha_verify_url, settings.http_timeout_seconds)


@lru_cache()
def get_mailer() -> Optional[Mailer]:
    settings = get_settings()
    if not (settings.mj_apikey_public and settings.mj_apikey_private):
        return None
    return Mailer(settings)


# =========
# Utilities
# =========

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=ALGORITHM)


def get_current_admin(authorization: Optional[str] = Header(None)):
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Not authenticated")
    settings = get_settings()
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    email = payload.get("sub")
    role = payload.get("role")
    if email != settings.admin_email or role != "admin":
        raise HTTPException(status_code=403, detail="Forbidden")
    return {"email": email, "role": role}


def get_documents(client: Optional[SanityClient], query: str, params: Optional[dict] = None, default: Any = None):
    """Run a query, or return `default` when no content source is configured"""
    if client is None:
        return default
    result = client.fetch(query, params)
    return default if result is None else result


def parse_many(model, items: Optional[List[dict]]) -> list:
    """Validate a list of documents, skipping the ones that fail validation"""
    parsed = []
    for item in items or []:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning("Skipping invalid %s document %s: %s", model.__name__, item.get("_id"), e.error_count())
    return parsed


def parse_one(model, item: Optional[dict]):
    if not item:
        return None
    try:
        return model.model_validate(item)
    except ValidationError as e:
        logger.warning("Invalid %s document %s: %s", model.__name__, item.get("_id"), e.error_count())
        return None


def page_props(cache: PageCache, key: str, builder: Callable[[], dict], empty: Callable[[], dict]) -> dict:
    """Cached page props; renders empty content when the CMS is down and nothing is cached"""
    try:
        return cache.get_or_build(key, builder)
    except ContentError as e:
        logger.error("Content unavailable for %s: %s", key, e)
        return empty()


def render_page(request: Request, name: str, context: dict, status_code: int = 200) -> HTMLResponse:
    settings = get_settings()
    context = {"site_name": settings.app_name, "now_year": datetime.now(timezone.utc).year, **context}
    return templates.TemplateResponse(request, name, context, status_code=status_code)


def method_not_allowed(allow: str, body: Optional[dict] = None) -> Response:
    if body is None:
        return Response(status_code=405, headers={"Allow": allow})
    return JSONResponse(body, status_code=405, headers={"Allow": allow})


async def read_json(request: Request) -> Optional[Any]:
    try:
        return await request.json()
    except ValueError:
        return None


# ==========
# Page props
# ==========

def home_props(client: Optional[SanityClient]) -> dict:
    return {
        "settings": parse_one(HomeSettings, get_documents(client, queries.HOME_SETTINGS_QUERY)),
        "posts": parse_many(Post, get_documents(client, queries.LATEST_POSTS_QUERY, default=[])),
    }


def blog_props(client: Optional[SanityClient], page_size: int) -> dict:
    feed = LoadMoreFeed(
        lambda start, end: get_documents(client, queries.POSTS_PAGE_QUERY, {"start": start, "end": end}, default=[]),
        page_size=page_size,
    )
    posts = parse_many(Post, feed.load_more())
    return {"posts": posts, "has_more": feed.has_more, "page_size": page_size}


def projects_props(client: Optional[SanityClient]) -> dict:
    return {
        "categories": parse_many(ProjectCategory, get_documents(client, queries.PROJECT_CATEGORIES_QUERY, default=[])),
        "projects": parse_many(Project, get_documents(client, queries.PROJECTS_QUERY, default=[])),
        "featured": parse_one(Project, get_documents(client, queries.FEATURED_PROJECT_QUERY)),
    }


def about_props(client: Optional[SanityClient]) -> dict:
    experiences = parse_many(ProfessionalExperience, get_documents(client, queries.EXPERIENCES_QUERY, default=[]))
    experiences.sort(key=lambda e: (e.order or 0, -e.start_year))
    return {
        "settings": parse_one(AboutSettings, get_documents(client, queries.ABOUT_SETTINGS_QUERY)),
        "experiences": experiences,
        "education": parse_many(Education, get_documents(client, queries.EDUCATION_QUERY, default=[])),
        "activity": parse_one(PersonalActivity, get_documents(client, queries.PERSONAL_ACTIVITY_QUERY)),
    }


def legal_props(client: Optional[SanityClient], slug: str) -> dict:
    doc = get_documents(client, queries.LEGAL_PAGE_QUERY, {"slug": slug, "id": slug})
    return {"doc": parse_one(LegalPage, doc)}


def post_card(post: Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "slug": post.slug.current if post.slug else None,
        "publishedAt": post.published_at.isoformat() if post.published_at else None,
        "excerpt": excerpt(post.body) if post.body else "",
        "image": urlfor(post.main_image, width=400, quality=80) if post.main_image else None,
        "blur": blur_url(post.main_image) if post.main_image else None,
        "categories": [{"id": c.id, "title": c.title} for c in post.categories],
    }


# ======
# Routes
# ======
@app.get("/health")
def health():
    return {"status": "ok", "service": get_settings().app_name, "cms": "configured" if get_cms() else "not-configured"}


@app.get("/", response_class=HTMLResponse)
def home(request: Request, client=Depends(get_cms), cache: PageCache = Depends(get_page_cache)):
    props = page_props(cache, "/", lambda: home_props(client), lambda: {"settings": None, "posts": []})
    return render_page(request, "home.html", props)


# Blog
@app.get("/blog", response_class=HTMLResponse)
def blog(request: Request, client=Depends(get_cms), cache: PageCache = Depends(get_page_cache)):
    page_size = get_settings().blog_page_size
    props = page_props(
        cache, "/blog", lambda: blog_props(client, page_size),
        lambda: {"posts": [], "has_more": False, "page_size": page_size},
    )
    return render_page(request, "blog.html", props)


@app.get("/api/posts")
def list_posts(
    start: int = Query(0, ge=0),
    limit: Optional[int] = Query(None, ge=1),
    client=Depends(get_cms),
):
    start, end = page_window(start, limit or get_settings().blog_page_size)
    try:
        items = get_documents(client, queries.POSTS_PAGE_QUERY, {"start": start, "end": end}, default=[])
    except ContentError:
        raise HTTPException(status_code=502, detail="Content unavailable")
    posts = parse_many(Post, items)
    # a short page is the end of the list
    return {"posts": [post_card(p) for p in posts], "hasMore": len(items) == end - start}


@app.get("/blog/{slug}", response_class=HTMLResponse)
def blog_post(slug: str, request: Request, client=Depends(get_cms), cache: PageCache = Depends(get_page_cache)):
    def build():
        post = parse_one(Post, get_documents(client, queries.POST_BY_SLUG_QUERY, {"slug": slug}))
        if post is None:
            raise HTTPException(status_code=404, detail="Not found")
        return {"post": post}

    try:
        props = cache.get_or_build(f"/blog/{slug}", build)
    except ContentError:
        raise HTTPException(status_code=502, detail="Content unavailable")
    return render_page(request, "blog_post.html", props)


# Projects
@app.get("/projects", response_class=HTMLResponse)
def projects_page(
    request: Request,
    category: str = Query(listing.ALL),
    page: int = Query(0),
    client=Depends(get_cms),
    cache: PageCache = Depends(get_page_cache),
):
    settings = get_settings()
    props = page_props(
        cache, "/projects", lambda: projects_props(client),
        lambda: {"categories": [], "projects": [], "featured": None},
    )
    by_id = listing.categories_by_id(props["categories"])
    by_key = listing.categories_by_key(props["categories"])
    filtered = listing.filter_projects(props["projects"], category, by_id)
    paged, page_count, page = listing.paginate(filtered, page, settings.projects_page_size)
    featured = props["featured"]
    return render_page(request, "projects.html", {
        **props,
        "active": category,
        "page": page,
        "page_count": page_count,
        "paged": paged,
        "by_key": by_key,
        "category_key": lambda p: listing.category_key(p, by_id),
        "recent": listing.recent_category_keys(props["projects"], by_id, days=settings.recent_project_days),
        "featured_category": by_key.get(listing.category_key(featured, by_id) or "") if featured else None,
    })


@app.get("/projects/{slug}", response_class=HTMLResponse)
def project_detail(slug: str, request: Request, client=Depends(get_cms), cache: PageCache = Depends(get_page_cache)):
    def build():
        project = parse_one(Project, get_documents(client, queries.PROJECT_BY_SLUG_QUERY, {"slug": slug}))
        if project is None:
            raise HTTPException(status_code=404, detail="Not found")
        category = project.category if isinstance(project.category, dict) else None
        return {"project": project, "category": parse_one(ProjectCategory, category)}

    try:
        props = cache.get_or_build(f"/projects/{slug}", build)
    except ContentError:
        raise HTTPException(status_code=502, detail="Content unavailable")
    return render_page(request, "project.html", props)


# About / contact / legal
@app.get("/me", response_class=HTMLResponse)
def about(request: Request, client=Depends(get_cms), cache: PageCache = Depends(get_page_cache)):
    props = page_props(
        cache, "/me", lambda: about_props(client),
        lambda: {"settings": None, "experiences": [], "education": [], "activity": None},
    )
    return render_page(request, "me.html", props)


@app.get("/contact", response_class=HTMLResponse)
def contact_page(request: Request, client=Depends(get_cms), cache: PageCache = Depends(get_page_cache)):
    props = page_props(
        cache, "/contact",
        lambda: {"settings": parse_one(ContactSettings, get_documents(client, queries.CONTACT_SETTINGS_QUERY))},
        lambda: {"settings": None},
    )
    return render_page(request, "contact.html", {**props, "max_message_length": 500})


@app.get("/terms", response_class=HTMLResponse)
@app.get("/privacy", response_class=HTMLResponse)
def legal(request: Request, client=Depends(get_cms), cache: PageCache = Depends(get_page_cache)):
    slug = request.url.path.strip("/")
    props = page_props(cache, f"/{slug}", lambda: legal_props(client, slug), lambda: {"doc": None})
    doc = props["doc"]
    updated = doc.updated_at if doc and doc.updated_at else datetime.now(timezone.utc)
    title = (doc.title if doc else None) or ("Terms of Service" if slug == "terms" else "Privacy Policy")
    return render_page(request, "legal.html", {**props, "title": title, "last_updated": updated.strftime("%Y-%m-%d")})


# Zero Trust
@app.get("/zt", response_class=HTMLResponse)
def zero_trust_index(request: Request):
    return render_page(request, "zt/index.html", {})


@app.get("/zt/enroll", response_class=HTMLResponse)
def zero_trust_enroll(request: Request):
    return render_page(request, "zt/enroll.html", {
        "download_sections": zero_trust.DOWNLOAD_SECTIONS,
        "instruction_sections": zero_trust.INSTRUCTION_SECTIONS,
        "highlight_step": zero_trust.highlight_step,
        "mobile_enroll_url": zero_trust.MOBILE_ENROLL_URL,
        "docs_url": zero_trust.WARP_DOCS_URL,
    })


@app.get("/zt/support", response_class=HTMLResponse)
def zero_trust_support(request: Request):
    client_host = request.client.host if request.client else None
    return render_page(request, "zt/support.html", zero_trust.support_diagnostics(request.headers, client_host))


@app.get("/social/{network}")
def social(network: str):
    target = SOCIAL_REDIRECTS.get(network)
    if not target:
        raise HTTPException(status_code=404, detail="Not found")
    return RedirectResponse(target, status_code=308)


@app.get("/sitemap.xml")
def sitemap(client=Depends(get_cms)):
    settings = get_settings()
    paths = list(STATIC_PATHS)
    try:
        feed = LoadMoreFeed(
            lambda start, end: get_documents(client, queries.POST_SLUGS_PAGE_QUERY, {"start": start, "end": end}, default=[]),
            page_size=50,
        )
        paths += [f"/blog/{slug}" for slug in feed.iter_all()]
        paths += [f"/projects/{slug}" for slug in get_documents(client, queries.PROJECT_SLUGS_QUERY, default=[])]
    except ContentError as e:
        logger.error("Sitemap built without content: %s", e)
    body = templates.get_template("sitemap.xml").render(base=settings.site_url.rstrip("/"), paths=paths)
    return Response(body, media_type="application/xml")


# Captcha
@app.api_route("/api/captcha-sitekey", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
def captcha_sitekey(request: Request):
    if request.method != "GET":
        return method_not_allowed("GET", {"message": "Method Not Allowed"})
    site_key = get_settings().captcha_site_key
    if not site_key:
        # 200 with a disabled flag so the form can switch itself off quietly
        return {"siteKey": None, "disabled": True, "envPresent": False}
    return {"siteKey": site_key, "disabled": False, "envPresent": True}


# Contact relay
@app.api_route("/api/sendEmail", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def send_email(
    request: Request,
    verifier: Optional[CaptchaVerifier] = Depends(get_captcha_verifier),
    mailer: Optional[Mailer] = Depends(get_mailer),
):
    if request.method != "POST":
        return method_not_allowed("POST", {"success": False, "message": "Method Not Allowed"})
    payload = await read_json(request)
    status, envelope = await run_in_threadpool(
        relay_contact, payload if isinstance(payload, dict) else None, get_settings(), verifier, mailer
    )
    return JSONResponse(envelope.model_dump(), status_code=status)


# Cats
@app.api_route("/api/getCats", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def get_cats(request: Request, cats: CatApi = Depends(get_cat_api)):
    if request.method != "GET":
        return method_not_allowed("GET")
    try:
        query = CatsQuery.model_validate(dict(request.query_params))
    except ValidationError as e:
        return JSONResponse({"detail": e.errors(include_url=False)}, status_code=422)
    try:
        data = await run_in_threadpool(cats.search, query.limit)
    except CatApiError as e:
        if e.status_code == 429:
            return JSONResponse({"error": "Rate limit reached", "fallback": RATE_LIMITED_IMAGE}, status_code=429)
        return JSONResponse({"error": "Failed to fetch cat data"}, status_code=500)
    return data


@app.api_route("/api/voteCat", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def vote_cat(request: Request, cats: CatApi = Depends(get_cat_api)):
    if request.method != "POST":
        return method_not_allowed("POST")
    body = await read_json(request)
    if not isinstance(body, dict) or not body.get("image_id") or "value" not in body:
        return JSONResponse({"message": "image_id and value are required in the request body."}, status_code=400)
    vote = VoteRequest(image_id=body["image_id"], value=body["value"])
    try:
        resp = await run_in_threadpool(cats.vote, vote.image_id, vote.value)
    except CatApiError as e:
        status = 429 if e.status_code == 429 else 500
        return JSONResponse(e.body or {}, status_code=status)
    try:
        data = resp.json()
    except ValueError:
        data = {}
    return JSONResponse(data, status_code=resp.status_code)


# Studio
@app.get("/api/studio/structure")
def studio_structure():
    return desk_structure()


@app.get("/api/studio/types")
def studio_types():
    return {name: model.model_json_schema(by_alias=True) for name, model in DOCUMENT_TYPES.items()}


# Auth / revalidation
@app.post("/api/auth/login", response_model=Token)
def login(data: LoginRequest):
    settings = get_settings()
    if data.email.lower() != settings.admin_email.lower() or not verify_password(data.password, admin_password_hash()):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    token = create_access_token({"sub": settings.admin_email, "role": "admin"})
    return Token(access_token=token)


@app.post("/api/revalidate")
def revalidate(
    data: Optional[RevalidateRequest] = None,
    _: dict = Depends(get_current_admin),
    cache: PageCache = Depends(get_page_cache),
):
    path = data.path if data else None
    dropped = cache.invalidate(path)
    logger.info("Revalidated pages", extra={"path": path or "*", "dropped": dropped})
    return {"revalidated": True, "path": path, "dropped": dropped}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and not request.url.path.startswith("/api/"):
        return render_page(request, "404.html", {}, status_code=404)
    return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=get_settings().app_env == "development")
