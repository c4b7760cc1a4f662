"""
Content Schemas for the Portfolio CMS

Each Pydantic model = one Sanity document type (camelCase name in DOCUMENT_TYPES).
Field constraints mirror the studio's validation rules so CMS payloads can be
checked on the way in. CMS JSON uses camelCase; attributes are snake_case.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PortableText = List[Dict[str, Any]]
SanityImage = Dict[str, Any]


class CmsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


class Slug(CmsModel):
    current: str


def _coerce_slug(v):
    # projections return either {"current": "..."} or the bare string
    if isinstance(v, str):
        return {"current": v}
    return v


class CmsDocument(CmsModel):
    id: Optional[str] = Field(default=None, alias="_id")
    created_at: Optional[datetime] = Field(default=None, alias="_createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="_updatedAt")


class SluggedDocument(CmsDocument):
    slug: Optional[Slug] = None

    @field_validator("slug", mode="before")
    @classmethod
    def coerce_slug(cls, v):
        return _coerce_slug(v)


# Blog
class Author(SluggedDocument):
    name: str
    image: Optional[SanityImage] = None
    bio: Optional[PortableText] = None


class Category(CmsDocument):
    title: str = Field(max_length=16)
    description: Optional[str] = None


class CategoryRef(CmsModel):
    id: Optional[str] = Field(default=None, alias="_id")
    title: str = ""


class PostTag(SluggedDocument):
    title: str = Field(min_length=1, max_length=32)
    slug: Slug
    description: Optional[str] = None


class Post(SluggedDocument):
    title: str = ""
    author: Optional[Dict[str, Any]] = None
    main_image: Optional[SanityImage] = Field(default=None, alias="mainImage")
    categories: List[CategoryRef] = []
    tags: List[Dict[str, Any]] = []
    published_at: Optional[datetime] = Field(default=None, alias="publishedAt")
    body: Optional[PortableText] = None

    @field_validator("categories", "tags", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v or []


# Projects
class ProjectCategory(CmsDocument):
    key: Optional[str] = None  # slug.current
    label: str = ""
    emoji: Optional[str] = None
    summary: Optional[str] = None
    gradient_start: Optional[str] = Field(default=None, alias="gradientStart")
    gradient_end: Optional[str] = Field(default=None, alias="gradientEnd")
    order: Optional[float] = None


class ProjectLinks(CmsModel):
    live: Optional[str] = None
    repo: Optional[str] = None


ProjectStatus = Literal["planned", "inProgress", "live", "archived"]


class Project(CmsDocument):
    title: str = Field(min_length=1)
    slug: Optional[str] = None
    subtitle: Optional[str] = Field(default=None, max_length=280)
    summary: Optional[str] = Field(default=None, max_length=280)
    category: Optional[Any] = None
    category_ref: Optional[str] = Field(default=None, alias="categoryRef")
    category_slug: Optional[str] = Field(default=None, alias="categorySlug")
    added: Optional[datetime] = None
    updated: Optional[datetime] = None
    status: Optional[ProjectStatus] = None
    featured: bool = False
    tags: List[str] = []
    links: ProjectLinks = ProjectLinks()
    image: Optional[SanityImage] = None
    body: Optional[PortableText] = None
    order: Optional[float] = None

    @field_validator("slug", mode="before")
    @classmethod
    def flatten_slug(cls, v):
        if isinstance(v, dict):
            return v.get("current")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v or []

    @field_validator("links", mode="before")
    @classmethod
    def none_to_links(cls, v):
        return v or {}

    @field_validator("featured", mode="before")
    @classmethod
    def none_to_false(cls, v):
        return bool(v)


# Settings singletons
class HomeSettings(CmsDocument):
    hero_title: Optional[str] = Field(default=None, alias="heroTitle")
    hero_subtitle: Optional[str] = Field(default=None, alias="heroSubtitle")
    pronouns: Optional[str] = None
    location: Optional[str] = None
    headshot: Optional[SanityImage] = None


class AboutSettings(CmsDocument):
    intro_heading: Optional[str] = Field(default=None, alias="introHeading")
    intro_subheading: Optional[str] = Field(default=None, alias="introSubheading")
    bio: Optional[PortableText] = None
    resume: Optional[Dict[str, Any]] = None  # file; projection expands asset->url
    header_images: List[SanityImage] = Field(default=[], alias="headerImages")

    @property
    def resume_url(self) -> Optional[str]:
        asset = (self.resume or {}).get("asset") or {}
        return asset.get("url")


LinkType = Literal["social", "resume", "share"]


class ContactLink(CmsModel):
    label: str = Field(min_length=1)
    url: Optional[str] = None
    tooltip: Optional[str] = None
    icon: Optional[str] = None
    link_type: LinkType = Field(default="social", alias="linkType")
    share_subject: Optional[str] = Field(default=None, alias="shareSubject")
    share_body: Optional[str] = Field(default=None, alias="shareBody")
    resume_file: Optional[Dict[str, Any]] = Field(default=None, alias="resumeFile")

    @property
    def href(self) -> Optional[str]:
        if self.link_type == "resume":
            asset = (self.resume_file or {}).get("asset") or {}
            return asset.get("url") or self.url
        return self.url


class ContactSettings(CmsDocument):
    subheading: Optional[str] = None
    social_links: List[ContactLink] = Field(default=[], alias="socialLinks")


class LegalPage(SluggedDocument):
    title: Optional[str] = None
    body: Optional[PortableText] = None
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


# About page
class ProfessionalExperience(CmsDocument):
    company: str = Field(min_length=1)
    role_title: Optional[str] = Field(default=None, alias="roleTitle")
    start_year: int = Field(alias="startYear")
    end_year: Optional[int] = Field(default=None, alias="endYear")
    employment_type: Optional[Literal["full-time", "part-time", "contract"]] = Field(
        default=None, alias="employmentType"
    )
    mode: Optional[Literal["on-site", "remote", "hybrid"]] = None
    location: Optional[str] = None
    logo: Optional[SanityImage] = None
    description: Optional[str] = None
    skills: List[str] = []
    order: Optional[float] = None

    @field_validator("skills", mode="before")
    @classmethod
    def split_skills(cls, v):
        # older entries stored skills as one comma-separated string
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v or []


class Education(CmsDocument):
    institution: str = Field(min_length=1)
    degree: Optional[str] = None
    field: Optional[str] = None
    start_year: Optional[int] = Field(default=None, alias="startYear")
    end_year: Optional[int] = Field(default=None, alias="endYear")
    location: Optional[str] = None
    logo: Optional[SanityImage] = None
    description: Optional[str] = None
    order: Optional[float] = None


class ActivityPhoto(CmsModel):
    title: Optional[str] = None
    caption: Optional[str] = None
    image: Optional[SanityImage] = None
    image_position: Optional[str] = Field(default=None, alias="imagePosition")
    order: Optional[float] = None


class PersonalActivity(CmsDocument):
    title: str = Field(min_length=1)
    intro: Optional[str] = None
    photos: List[ActivityPhoto] = []

    @field_validator("photos", mode="before")
    @classmethod
    def none_to_list(cls, v):
        return v or []

    @property
    def ordered_photos(self) -> List[ActivityPhoto]:
        return sorted(self.photos, key=lambda p: p.order if p.order is not None else 0)


DOCUMENT_TYPES: Dict[str, type] = {
    "post": Post,
    "author": Author,
    "category": Category,
    "postTag": PostTag,
    "homeSettings": HomeSettings,
    "legalPage": LegalPage,
    "projectCategory": ProjectCategory,
    "project": Project,
    "aboutSettings": AboutSettings,
    "contactSettings": ContactSettings,
    "professionalExperience": ProfessionalExperience,
    "education": Education,
    "personalActivity": PersonalActivity,
}


# ===============
# Desk structure
# ===============

def _singleton(title: str, schema_type: str, document_id: str, icon: str = "document") -> Dict[str, Any]:
    return {"kind": "document", "title": title, "icon": icon, "schemaType": schema_type, "documentId": document_id}


def _type_list(title: str, schema_type: str, icon: Optional[str] = None) -> Dict[str, Any]:
    return {"kind": "documentTypeList", "title": title, "icon": icon, "schemaType": schema_type}


def _group(title: str, icon: str, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {"kind": "list", "title": title, "icon": icon, "items": items}


DIVIDER = {"kind": "divider"}


def desk_structure() -> Dict[str, Any]:
    """How the studio groups document types for editors"""
    return _group("Content", "folder", [
        _group("Home & Legal", "home", [
            _singleton("Home Settings", "homeSettings", "homeSettings", icon="home"),
            DIVIDER,
            _singleton("Privacy Policy", "legalPage", "privacy"),
            _singleton("Terms of Service", "legalPage", "terms", icon="document-text"),
        ]),
        _group("About", "user", [
            _singleton("About Settings", "aboutSettings", "aboutSettings"),
            DIVIDER,
            _type_list("Professional Experience", "professionalExperience"),
            DIVIDER,
            _type_list("Education", "education"),
            DIVIDER,
            _singleton("Personal Activities", "personalActivity", "personalActivity"),
        ]),
        _group("Blog", "compose", [
            _type_list("All Posts", "post"),
            DIVIDER,
            _type_list("Post Categories", "category", icon="tag"),
            _type_list("Post Tags", "postTag", icon="tag"),
        ]),
        _group("Projects", "case", [
            _type_list("All Projects", "project", icon="case"),
            DIVIDER,
            _type_list("Project Categories", "projectCategory", icon="tag"),
        ]),
        _singleton("Contact Settings", "contactSettings", "contactSettings", icon="compose"),
        DIVIDER,
        _type_list("Authors", "author", icon="user"),
    ])
