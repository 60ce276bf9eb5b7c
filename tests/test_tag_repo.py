import app.repos.tag_repo as tag_repo
from app.models.tag import ProfileTag, Tag
from app.repos import category_repo, profile_repo


def _profile(db, name="A", category="Music"):
    category_obj, _ = category_repo.get_or_create(db, category)
    return profile_repo.create(db, name=name, category_id=category_obj.id)


def test_get_or_create_is_case_insensitive(db_session):
    tag, created = tag_repo.get_or_create(db_session, " Jazz ")
    same, created_again = tag_repo.get_or_create(db_session, "jazz", tag_type="universal")
    assert created is True and created_again is False
    assert same.id == tag.id
    assert same.name == "Jazz"
    assert same.type == "contextual"


def test_get_or_create_refetches_after_concurrent_insert(monkeypatch, db_session):
    existing = Tag(name="Jazz", type="contextual")
    db_session.add(existing)
    db_session.commit()
    real_get_by_name = tag_repo.get_by_name
    calls = []

    def _stale_then_real(db, name):
        calls.append(name)
        if len(calls) == 1:
            return None
        return real_get_by_name(db, name)

    monkeypatch.setattr(tag_repo, "get_by_name", _stale_then_real)
    tag, created = tag_repo.get_or_create(db_session, "JAZZ")
    assert created is False
    assert tag.id == existing.id
    db_session.commit()
    assert db_session.query(Tag).count() == 1


def test_link_profile_tag_is_idempotent(db_session):
    profile = _profile(db_session)
    tag, _ = tag_repo.get_or_create(db_session, "Jazz")
    assert tag_repo.link_profile_tag(db_session, profile.id, tag.id) is True
    assert tag_repo.link_profile_tag(db_session, profile.id, tag.id) is False
    db_session.commit()
    assert db_session.query(ProfileTag).count() == 1


def test_set_profile_tags_replaces_existing(db_session):
    profile = _profile(db_session)
    tag_repo.set_profile_tags(db_session, profile.id, ["Jazz", "Blues"])
    db_session.commit()
    tags = tag_repo.set_profile_tags(db_session, profile.id, ["blues", " Soul ", "BLUES", ""])
    db_session.commit()
    assert [t.name for t in tags] == ["Blues", "Soul"]
    linked = {row.tag_id for row in db_session.query(ProfileTag).filter(ProfileTag.profile_id == profile.id)}
    assert linked == {t.id for t in tags}
    # Jazz survives as a tag, it just has no link any more.
    assert db_session.query(Tag).count() == 3


def test_counts_and_category_spread(db_session):
    a = _profile(db_session, "A", "Music")
    b = _profile(db_session, "B", "Art")
    c = _profile(db_session, "C", "Art")
    jazz, _ = tag_repo.get_or_create(db_session, "Jazz")
    oil, _ = tag_repo.get_or_create(db_session, "Oil")
    for profile in (a, b, c):
        tag_repo.link_profile_tag(db_session, profile.id, jazz.id)
    tag_repo.link_profile_tag(db_session, b.id, oil.id)
    db_session.commit()

    counts = {t.name: n for t, n in tag_repo.get_all_with_counts(db_session)}
    assert counts == {"Jazz": 3, "Oil": 1}
    assert tag_repo.get_category_spread(db_session) == {jazz.id: 2, oil.id: 1}
    assert tag_repo.get_all_with_counts(db_session, tag_type="universal") == []


def test_update_classification(db_session):
    tag, _ = tag_repo.get_or_create(db_session, "Jazz")
    db_session.commit()
    updated = tag_repo.update_classification(db_session, tag.id, suggested_type="universal")
    assert updated.suggested_type == "universal"
    updated = tag_repo.update_classification(db_session, tag.id, tag_type="universal", clear_suggestion=True)
    assert (updated.type, updated.suggested_type) == ("universal", None)
    assert tag_repo.update_classification(db_session, 404, tag_type="universal") is None
