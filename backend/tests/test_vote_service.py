import pytest
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from safecircle.core.exceptions import ConcurrentModificationError, InvalidArgumentError, TargetNotFoundError
from safecircle.models.community import Discussion, Reply, Vote
from safecircle.services.vote_service import vote_service


@pytest.fixture()
def discussion(db, make_user):
    author = make_user()
    discussion = Discussion(
        author_id=author.id,
        title="Well lit routes home",
        content="Which streets near the station stay lit after midnight?",
        category="safety",
    )
    db.add(discussion)
    db.commit()
    db.refresh(discussion)
    return discussion


def _tally(db, model, target_id):
    db.expire_all()
    target = db.get(model, target_id)
    return target.upvotes, target.downvotes


def test_toggle_scenario(db, make_user, discussion):
    voter = make_user()

    def vote(kind):
        return vote_service.toggle_vote(db, voter.id, discussion.id, "discussion", kind)

    result = vote("upvote")
    assert (result.action, result.upvotes, result.downvotes) == ("added", 1, 0)

    result = vote("upvote")
    assert (result.action, result.upvotes, result.downvotes) == ("removed", 0, 0)

    result = vote("downvote")
    assert (result.action, result.upvotes, result.downvotes) == ("added", 0, 1)

    result = vote("upvote")
    assert (result.action, result.upvotes, result.downvotes) == ("changed", 1, 0)

    assert _tally(db, Discussion, discussion.id) == (1, 0)
    votes = db.query(Vote).filter(Vote.target_id == discussion.id).all()
    assert [(v.user_id, v.vote_type) for v in votes] == [(voter.id, "upvote")]


def test_downvote_then_downvote_restores_tally(db, make_user, discussion):
    voter = make_user()
    vote_service.toggle_vote(db, voter.id, discussion.id, "discussion", "downvote")
    result = vote_service.toggle_vote(db, voter.id, discussion.id, "discussion", "downvote")

    assert result.action == "removed"
    assert _tally(db, Discussion, discussion.id) == (0, 0)
    assert db.query(Vote).count() == 0


def test_votes_from_different_accounts_accumulate(db, make_user, discussion):
    voters = [make_user() for _ in range(3)]
    for voter in voters:
        vote_service.toggle_vote(db, voter.id, discussion.id, "discussion", "upvote")
    vote_service.toggle_vote(db, voters[0].id, discussion.id, "discussion", "downvote")

    assert _tally(db, Discussion, discussion.id) == (2, 1)


def test_reply_votes_are_separate_from_discussion_votes(db, make_user, discussion):
    voter = make_user()
    reply = Reply(discussion_id=discussion.id, author_id=voter.id, content="Main street is fine")
    db.add(reply)
    db.commit()

    vote_service.toggle_vote(db, voter.id, discussion.id, "discussion", "upvote")
    result = vote_service.toggle_vote(db, voter.id, reply.id, "reply", "upvote")

    assert result.action == "added"
    assert _tally(db, Reply, reply.id) == (1, 0)
    assert _tally(db, Discussion, discussion.id) == (1, 0)


@pytest.mark.parametrize(
    "target_kind,vote_kind",
    [("post", "upvote"), ("discussion", "like"), ("answer", "upvote"), ("", "")],
)
def test_toggle_rejects_unknown_kinds(db, make_user, discussion, target_kind, vote_kind):
    voter = make_user()
    with pytest.raises(InvalidArgumentError):
        vote_service.toggle_vote(db, voter.id, discussion.id, target_kind, vote_kind)


def test_toggle_missing_target(db, make_user):
    voter = make_user()
    with pytest.raises(TargetNotFoundError):
        vote_service.toggle_vote(db, voter.id, 999, "reply", "upvote")
    assert db.query(Vote).count() == 0


def test_decrement_is_floored_at_zero(db, make_user, discussion):
    voter = make_user()
    vote_service.toggle_vote(db, voter.id, discussion.id, "discussion", "upvote")
    # Simulate a drifted counter.
    db.get(Discussion, discussion.id).upvotes = 0
    db.commit()

    result = vote_service.toggle_vote(db, voter.id, discussion.id, "discussion", "upvote")

    assert result.action == "removed"
    assert result.upvotes == 0


def test_duplicate_vote_rows_are_rejected_by_constraint(db, make_user, discussion):
    voter = make_user()
    db.add(Vote(user_id=voter.id, target_id=discussion.id, target_type="discussion", vote_type="upvote"))
    db.commit()
    db.add(Vote(user_id=voter.id, target_id=discussion.id, target_type="discussion", vote_type="downvote"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_get_votes_for_targets(db, make_user, discussion):
    voter = make_user()
    other = Discussion(
        author_id=voter.id,
        title="Night bus safety tips",
        content="Share what has worked for you on late night buses.",
    )
    untouched = Discussion(
        author_id=voter.id,
        title="Neighbourhood watch meetup",
        content="Monthly meetup details for the neighbourhood watch group.",
    )
    db.add_all([other, untouched])
    db.commit()

    vote_service.toggle_vote(db, voter.id, discussion.id, "discussion", "upvote")
    vote_service.toggle_vote(db, voter.id, other.id, "discussion", "downvote")

    votes = vote_service.get_votes_for_targets(
        db, voter.id, [discussion.id, other.id, untouched.id], "discussion"
    )

    assert votes == {discussion.id: "upvote", other.id: "downvote"}
    assert vote_service.get_votes_for_targets(db, voter.id, [], "discussion") == {}
    assert vote_service.get_votes_for_targets(db, voter.id, [discussion.id], "reply") == {}


def test_concurrent_first_vote_rolls_back_whole_unit(db, engine, make_user, discussion):
    voter_id = make_user().id
    discussion_id = discussion.id
    OtherSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    fired = []

    def vote_elsewhere_first(session, flush_context, instances):
        if fired:
            return
        fired.append(True)
        other = OtherSession()
        other.add(Vote(user_id=voter_id, target_id=discussion_id, target_type="discussion", vote_type="upvote"))
        other.commit()
        other.close()

    event.listen(db, "before_flush", vote_elsewhere_first)
    with pytest.raises(ConcurrentModificationError):
        vote_service.toggle_vote(db, voter_id, discussion_id, "discussion", "upvote")

    assert _tally(db, Discussion, discussion_id) == (0, 0)
    assert db.query(Vote).count() == 1


@pytest.mark.parametrize("vote_kind", ["upvote", "downvote"])
def test_vote_row_changed_between_read_and_write(db, engine, make_user, discussion, vote_kind):
    voter_id = make_user().id
    discussion_id = discussion.id
    vote_service.toggle_vote(db, voter_id, discussion_id, "discussion", "upvote")
    OtherSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    fired = []

    def switch_vote_elsewhere(orm_execute_state):
        if fired or not (orm_execute_state.is_update or orm_execute_state.is_delete):
            return
        fired.append(True)
        other = OtherSession()
        other.query(Vote).filter(Vote.user_id == voter_id).update(
            {Vote.vote_type: "downvote"}, synchronize_session=False
        )
        other.commit()
        other.close()

    event.listen(db, "do_orm_execute", switch_vote_elsewhere)
    # upvote again would remove the vote, downvote would change it; both lose the race
    with pytest.raises(ConcurrentModificationError):
        vote_service.toggle_vote(db, voter_id, discussion_id, "discussion", vote_kind)

    assert _tally(db, Discussion, discussion_id) == (1, 0)
    assert [v.vote_type for v in db.query(Vote).all()] == ["downvote"]


def test_get_votes_for_targets_rejects_answers(db, make_user):
    voter = make_user()
    with pytest.raises(InvalidArgumentError):
        vote_service.get_votes_for_targets(db, voter.id, [1], "answer")
