"""
Sanity content client

Thin httpx wrapper over the GROQ query endpoint plus the projections the
pages use. Parameters are always sent as `$name` query args.
"""
import json
from typing import Any, Dict, Optional

import httpx

from config import Settings, get_settings
from logging_config import LoggingConfig

logger = LoggingConfig.get_logger(__name__)


class ContentError(Exception):
    """Raised when the content API cannot answer a query"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SanityClient:
    def __init__(
        self,
        project_id: str,
        dataset: str = "production",
        api_version: str = "2021-08-31",
        use_cdn: bool = True,
        token: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.project_id = project_id
        self.dataset = dataset
        self.api_version = api_version.lstrip("v")
        # authenticated requests bypass the CDN
        host = "apicdn" if use_cdn and not token else "api"
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._http = httpx.Client(
            base_url=f"https://{project_id}.{host}.sanity.io/v{self.api_version}",
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings, transport: Optional[httpx.BaseTransport] = None):
        return cls(
            project_id=settings.sanity_project_id,
            dataset=settings.sanity_dataset,
            api_version=settings.sanity_api_version,
            use_cdn=settings.sanity_use_cdn,
            token=settings.sanity_token,
            timeout=settings.http_timeout_seconds,
            transport=transport,
        )

    def fetch(self, query: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Run a GROQ query and return its `result`"""
        args = {"query": query}
        for name, value in (params or {}).items():
            args[f"${name}"] = json.dumps(value)
        try:
            resp = self._http.get(f"/data/query/{self.dataset}", params=args)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error("Content query failed", extra={"status": e.response.status_code})
            raise ContentError("Content query failed", e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error("Content API unreachable: %s", e)
            raise ContentError("Content API unreachable") from e
        return resp.json().get("result")

    def close(self):
        self._http.close()


_client: Optional[SanityClient] = None


def get_cms() -> Optional[SanityClient]:
    """Shared client, or None when no project is configured"""
    global _client
    settings = get_settings()
    if not settings.sanity_project_id:
        return None
    if _client is None:
        _client = SanityClient.from_settings(settings)
    return _client


# ===========
# Projections
# ===========

POST_CARD_FIELDS = """
    _id,
    title,
    slug,
    body,
    publishedAt,
    mainImage,
    categories[] -> {title, _id}
"""

LATEST_POSTS_QUERY = """*[_type == "post"] | order(publishedAt desc) [0..2] {
    _id,
    title,
    slug,
    publishedAt
}"""

POSTS_PAGE_QUERY = f'*[_type == "post"] | order(publishedAt desc) [$start...$end] {{{POST_CARD_FIELDS}}}'

POST_BY_SLUG_QUERY = """*[_type == "post" && slug.current == $slug][0]{
    ...,
    categories[] -> {title, _id},
    author -> {name, image}
}"""

POST_SLUGS_PAGE_QUERY = (
    '*[_type == "post" && defined(slug.current)] | order(publishedAt desc) [$start...$end].slug.current'
)

PROJECT_CATEGORIES_QUERY = (
    '*[_type=="projectCategory"]|order(coalesce(order,0) asc, title asc){ "_id": _id, "key": slug.current, '
    '"label": title, "emoji": emoji, "summary": description, "gradientStart": gradientStart.hex, '
    '"gradientEnd": gradientEnd.hex }'
)

PROJECT_FIELDS = """
    "title": title,
    "subtitle": summary,
    "slug": slug.current,
    "categoryRef": category._ref,
    "category": category,
    "categorySlug": category->slug.current,
    "added": _createdAt,
    "updated": _updatedAt,
    "status": status,
    "featured": featured,
    "links": links,
    "image": image{
      ...,
      asset->{url, metadata{lqip, dimensions}}
    }
"""

PROJECTS_QUERY = f'*[_type=="project"]|order(coalesce(order,0) desc, _createdAt desc){{ {PROJECT_FIELDS} }}'

FEATURED_PROJECT_QUERY = (
    f'*[_type=="project" && featured == true]|order(coalesce(order,0) desc, _createdAt desc)[0]'
    f'{{ {PROJECT_FIELDS} }}'
)

PROJECT_BY_SLUG_QUERY = """*[_type=="project" && slug.current == $slug][0]{
    _id,
    title,
    "slug": slug.current,
    summary,
    body,
    status,
    "added": _createdAt,
    "updated": _updatedAt,
    links,
    tags,
    image{
      ...,
      asset->{url, metadata{lqip, dimensions}},
      crop,
      hotspot
    },
    category->{
      _id,
      "key": slug.current,
      "label": title,
      emoji,
      "gradientStart": gradientStart.hex,
      "gradientEnd": gradientEnd.hex
    }
}"""

PROJECT_SLUGS_QUERY = '*[_type == "project" && defined(slug.current)].slug.current'

HOME_SETTINGS_QUERY = '*[_id == "homeSettings"][0]{..., headshot{..., asset->{url, metadata{lqip, dimensions}}}}'

ABOUT_SETTINGS_QUERY = (
    '*[_id == "aboutSettings"][0]{..., resume{asset->{url}}, '
    'headerImages[]{..., asset->{url, metadata{lqip, dimensions}}}}'
)

CONTACT_SETTINGS_QUERY = '*[_id == "contactSettings"][0]{..., socialLinks[]{..., resumeFile{asset->{url}}}}'

EXPERIENCES_QUERY = '*[_type == "professionalExperience"]|order(coalesce(order,0) asc, startYear desc)'

EDUCATION_QUERY = '*[_type == "education"]|order(coalesce(order,0) asc, startYear desc)'

PERSONAL_ACTIVITY_QUERY = (
    '*[_id == "personalActivity"][0]{..., photos[]{..., image{..., asset->{url, metadata{lqip, dimensions}}}}}'
)

LEGAL_PAGE_QUERY = (
    '*[_type == "legalPage" && (slug.current == $slug || _id == $id)][0]{title, body, "updatedAt": _updatedAt}'
)
