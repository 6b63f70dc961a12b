from liteorm.base import Entity
from liteorm.database import DatabaseEngine
from liteorm.orm_types import ForeignKeyMetadata, Integer, RelationshipMetadata, Text


class User(Entity):
    pass


class Post(Entity):
    pass


class Comment(Entity):
    pass


class Tag(Entity):
    pass


class CountingEngine(DatabaseEngine):
    """In-memory engine that records every statement it runs."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.statements = []

    async def _run(self, sql, params=None):
        self.statements.append(sql)
        return await super()._run(sql, params)

    @property
    def selects(self):
        return [s for s in self.statements if s.startswith("SELECT")]

    def reset(self):
        self.statements.clear()


def user_columns():
    return [
        Integer("id", is_primary_key=True, auto_increment=True, nullable=False),
        Text("name", nullable=False),
        Text("email"),
    ]


def register_sample_models(registry):
    registry.register_model(
        User, "users", user_columns(),
        relationships={"posts": RelationshipMetadata.one_to_many(Post, "author_id")},
    )
    registry.register_model(
        Post, "posts",
        [
            Integer("id", is_primary_key=True, auto_increment=True, nullable=False),
            Text("title", nullable=False),
            Integer("author_id"),
        ],
        foreign_keys={"author_id": ForeignKeyMetadata("users", "id")},
        relationships={
            "author": RelationshipMetadata.many_to_one(User, "author_id"),
            "comments": RelationshipMetadata.one_to_many(Comment, "post_id"),
            "tags": RelationshipMetadata.many_to_many(Tag, "post_tags", "post_id", "tag_id"),
        },
    )
    registry.register_model(
        Comment, "comments",
        [
            Integer("id", is_primary_key=True, auto_increment=True, nullable=False),
            Integer("post_id"),
            Text("body", nullable=False),
            Text("created_on"),
            Integer("approved", nullable=False, default_value=0),
        ],
        foreign_keys={"post_id": ForeignKeyMetadata("posts", "id", on_delete_cascade=True)},
    )
    registry.register_model(
        Tag, "tags",
        [
            Integer("id", is_primary_key=True, auto_increment=True, nullable=False),
            Text("label", nullable=False),
        ],
    )
    return registry
