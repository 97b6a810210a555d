import pytest

from safecircle.core.exceptions import AuthorizationError, ResourceNotFoundError
from safecircle.models.community import Discussion, Reply, Vote
from safecircle.schemas.community import DiscussionCreate, DiscussionUpdate
from safecircle.services.community_service import community_service, page_count
from safecircle.services.vote_service import vote_service


def _create(db, author, title, category="general", content=None):
    data = DiscussionCreate(
        title=title,
        content=content or f"{title} - details for the community board.",
        category=category,
        tags=[" Night ", "Transit"],
    )
    return community_service.create_discussion(db, author.id, data)


def test_create_normalizes_tags(db, make_user):
    author = make_user()
    discussion = _create(db, author, "Walking home after dark")

    assert discussion.tags == ["night", "transit"]
    assert discussion.author.id == author.id
    assert (discussion.upvotes, discussion.downvotes, discussion.views) == (0, 0, 0)


def test_list_filters_and_paginates(db, make_user):
    author = make_user()
    for i in range(5):
        _create(db, author, f"Safety discussion number {i}", category="safety")
    _create(db, author, "General chat about the app", category="general")

    page, total = community_service.list_discussions(db, category="safety", page=2, limit=2)
    assert total == 5
    assert [d.title for d in page] == ["Safety discussion number 2", "Safety discussion number 1"]

    _, everything = community_service.list_discussions(db, category="all")
    assert everything == 6
    assert page_count(5, 2) == 3


def test_list_search_matches_title_or_content(db, make_user):
    author = make_user()
    _create(db, author, "Bike lanes on Elm street", content="Bike lanes on Elm street are well lit now.")
    _create(db, author, "Parking garage lighting", content="The garage near the mall has broken lights.")

    found, total = community_service.list_discussions(db, search="garage")
    assert total == 1
    assert found[0].title == "Parking garage lighting"


def test_popular_sort_uses_upvotes(db, make_user):
    author = make_user()
    quiet = _create(db, author, "A quiet discussion thread")
    loud = _create(db, author, "A very popular discussion")
    for _ in range(2):
        voter = make_user()
        vote_service.toggle_vote(db, voter.id, loud.id, "discussion", "upvote")

    ranked, _ = community_service.list_discussions(db, sort="popular")
    assert [d.id for d in ranked] == [loud.id, quiet.id]


def test_view_increments_counter(db, make_user):
    discussion = _create(db, make_user(), "Counting the views here")

    community_service.view_discussion(db, discussion.id)
    viewed = community_service.view_discussion(db, discussion.id)

    assert viewed.views == 2
    with pytest.raises(ResourceNotFoundError):
        community_service.view_discussion(db, 999)


def test_only_author_may_update(db, make_user):
    author, stranger = make_user(), make_user()
    discussion = _create(db, author, "Original discussion title")

    with pytest.raises(AuthorizationError):
        community_service.update_discussion(
            db, discussion.id, stranger.id, DiscussionUpdate(title="Hijacked discussion title")
        )

    updated = community_service.update_discussion(
        db, discussion.id, author.id, DiscussionUpdate(title="Edited discussion title")
    )
    assert updated.title == "Edited discussion title"


def test_reply_increments_reply_count(db, make_user):
    author = make_user()
    discussion = _create(db, author, "Reply counter discussion")

    reply = community_service.create_reply(db, discussion.id, author.id, "First!")
    community_service.create_reply(db, discussion.id, author.id, "Second")

    db.expire_all()
    assert db.get(Discussion, discussion.id).reply_count == 2
    assert reply.author.id == author.id

    replies, total = community_service.list_replies(db, discussion.id)
    assert total == 2
    assert [r.content for r in replies] == ["Second", "First!"]

    with pytest.raises(ResourceNotFoundError):
        community_service.create_reply(db, 999, author.id, "Nowhere")


def test_delete_removes_replies_and_votes(db, make_user):
    author, voter = make_user(), make_user()
    discussion = _create(db, author, "Discussion to be deleted")
    keep = _create(db, author, "Discussion that stays put")
    reply = community_service.create_reply(db, discussion.id, voter.id, "A reply")
    vote_service.toggle_vote(db, voter.id, discussion.id, "discussion", "upvote")
    vote_service.toggle_vote(db, voter.id, reply.id, "reply", "downvote")
    vote_service.toggle_vote(db, voter.id, keep.id, "discussion", "upvote")

    with pytest.raises(AuthorizationError):
        community_service.delete_discussion(db, discussion.id, voter.id)

    community_service.delete_discussion(db, discussion.id, author.id)

    assert db.get(Discussion, discussion.id) is None
    assert db.query(Reply).count() == 0
    remaining = db.query(Vote).all()
    assert [(v.target_type, v.target_id) for v in remaining] == [("discussion", keep.id)]
