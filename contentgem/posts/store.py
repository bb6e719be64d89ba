"""Post persistence used when publishing generated content as drafts."""

import html
import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import bleach

GENERATED_CONTENT_META = "_contentgem_wp_generated_content"

# Tags a generated article may keep
ALLOWED_TAGS = [
    "p", "br", "strong", "b", "em", "i", "u", "s", "a", "span",
    "ul", "ol", "li",
    "h1", "h2", "h3", "h4", "h5", "h6",
    "blockquote", "code", "pre", "img", "figure", "figcaption",
    "table", "thead", "tbody", "tr", "th", "td",
]
ALLOWED_ATTRIBUTES = {
    "a": ["href", "title", "rel", "target"],
    "img": ["src", "alt", "title", "width", "height"],
    "*": ["class"],
}


def sanitize_post_content(content: str) -> str:
    return bleach.clean(content, tags=ALLOWED_TAGS, attributes=ALLOWED_ATTRIBUTES, strip=True)


def sanitize_text(value: str) -> str:
    """Single-line plain text: tags stripped, whitespace collapsed."""
    return " ".join(html.unescape(bleach.clean(value, tags=[], strip=True)).split())


@dataclass
class Post:
    post_id: int
    title: str
    content: str
    status: str = "draft"
    post_type: str = "post"
    categories: list[int] = field(default_factory=list)
    meta: dict[str, str] = field(default_factory=dict)


class PostStore(ABC):
    @abstractmethod
    async def insert_draft(self, title: str, content: str, category_id: int) -> Post:
        ...

    @abstractmethod
    async def set_meta(self, post_id: int, key: str, value: str) -> None:
        ...

    def edit_url(self, post_id: int) -> str:
        return f"/wp-admin/post.php?post={post_id}&action=edit"


class MemoryPostStore(PostStore):
    def __init__(self):
        self._posts: dict[int, Post] = {}
        self._ids = itertools.count(1)

    async def insert_draft(self, title: str, content: str, category_id: int) -> Post:
        post = Post(post_id=next(self._ids), title=title, content=content, categories=[category_id])
        self._posts[post.post_id] = post
        return post

    async def set_meta(self, post_id: int, key: str, value: str) -> None:
        self._posts[post_id].meta[key] = value

    def get(self, post_id: int) -> Post | None:
        return self._posts.get(post_id)


_store: PostStore | None = None


def get_post_store() -> PostStore:
    global _store
    if _store is None:
        _store = MemoryPostStore()
    return _store
