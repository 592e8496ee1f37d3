from conftest import make_profile, make_slate

from dailypicks.models import Game, Pick


def test_place_new_pick(app, db):
    alice = make_profile()
    game = make_slate().games.first()

    pick, message = Pick.place(alice.id, game, "home")
    db.session.commit()

    assert message == "Pick created"
    assert pick.slate_id == game.slate_id
    assert pick.is_correct is None
    assert Pick.query.count() == 1


def test_same_pick_twice_is_unchanged(app, db):
    alice = make_profile()
    game = make_slate().games.first()
    Pick.place(alice.id, game, "away")
    db.session.commit()

    pick, message = Pick.place(alice.id, game, "away")

    assert message == "Pick unchanged"
    assert pick.pick == "away"


def test_change_side_before_start(app, db):
    alice = make_profile()
    game = make_slate().games.first()
    Pick.place(alice.id, game, "away")
    db.session.commit()

    pick, message = Pick.place(alice.id, game, "home")
    db.session.commit()

    assert message == "Pick updated"
    assert Pick.query.one().pick == "home"


def test_rejected_after_start_time(app, db, clock):
    alice = make_profile()
    game = make_slate().games.first()
    Pick.place(alice.id, game, "home")
    db.session.commit()
    clock.advance(hours=8)

    pick, message = Pick.place(alice.id, game, "away")

    assert pick is None
    assert message == "Game has already started"
    assert Pick.query.one().pick == "home"


def test_live_game_is_locked_even_before_scheduled_start(app, db):
    game = make_slate().games.first()
    game.apply_score(0, 2, False)
    db.session.commit()

    pick, message = Pick.place(make_profile().id, game, "home")

    assert pick is None
    assert game.status == Game.STATUS_LIVE
    assert not game.is_pickable()


def test_invalid_side(app):
    game = make_slate().games.first()

    pick, message = Pick.place(make_profile().id, game, "draw")

    assert pick is None
    assert "home" in message


def test_remove_pick(app, db):
    alice = make_profile()
    game = make_slate().games.first()
    Pick.place(alice.id, game, "home")
    db.session.commit()

    removed, message = Pick.remove(alice.id, game)
    db.session.commit()

    assert removed is True
    assert Pick.query.count() == 0


def test_remove_without_pick(app):
    game = make_slate().games.first()

    removed, message = Pick.remove(make_profile().id, game)

    assert removed is False
    assert message == "No pick to remove"


def test_remove_after_start_is_refused(app, db, clock):
    alice = make_profile()
    game = make_slate().games.first()
    Pick.place(alice.id, game, "home")
    db.session.commit()
    clock.advance(hours=8)

    removed, message = Pick.remove(alice.id, game)

    assert removed is False
    assert Pick.query.count() == 1


def test_grading_on_final(app, db):
    alice = make_profile()
    game = make_slate().games.first()
    Pick.place(alice.id, game, "away")
    db.session.commit()

    assert game.apply_score(99, 101, True) == Game.STATUS_FINAL
    db.session.commit()

    assert game.winner == Game.WINNER_AWAY
    assert Pick.query.one().is_correct is True
