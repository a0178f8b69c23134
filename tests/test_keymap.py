import pytest

from slamkit.entities import Feature, Frame, MapPoint
from slamkit.keymap import Map
from slamkit.lie import SE3


def _keyframe(kf_id, translation=(0.0, 0.0, 0.0)):
    frame = Frame(kf_id, 0.0, SE3(None, translation))
    frame.keyframe_id = kf_id
    frame.is_keyframe = True
    return frame


def test_insert_and_query_keyframes():
    keymap = Map(7)
    frames = [_keyframe(i) for i in range(3)]
    for frame in frames:
        keymap.insert_keyframe(frame)
    assert set(keymap.all_keyframes()) == {0, 1, 2}
    assert keymap.active_keyframes()[1] is frames[1]


def test_returned_dicts_are_copies():
    keymap = Map(7)
    keymap.insert_keyframe(_keyframe(0))
    snapshot = keymap.all_keyframes()
    snapshot.clear()
    assert len(keymap.all_keyframes()) == 1


def test_window_removes_nearest_frame_when_close():
    keymap = Map(3)
    for i in range(4):
        keymap.insert_keyframe(_keyframe(i))
    active = keymap.active_keyframes()
    assert len(active) == 3
    assert 0 not in active
    assert set(keymap.all_keyframes()) == {0, 1, 2, 3}


def test_window_removes_farthest_frame_when_all_far():
    keymap = Map(3)
    for i, x in enumerate([0.0, 5.0, 9.0, 10.0]):
        keymap.insert_keyframe(_keyframe(i, (x, 0.0, 0.0)))
    active = keymap.active_keyframes()
    assert set(active) == {1, 2, 3}


def test_removed_keyframe_drops_its_observations():
    keymap = Map(1)
    old = _keyframe(0, (0.0, 0.0, 0.0))
    point = MapPoint.create()
    feature = Feature(old, (1.0, 1.0))
    feature.map_point = point
    point.add_observation(feature)
    old.features_left.append(feature)
    old.features_right.append(None)
    keymap.insert_keyframe(old)
    keymap.insert_map_point(point)

    keymap.insert_keyframe(_keyframe(1, (5.0, 0.0, 0.0)))
    assert set(keymap.active_keyframes()) == {1}
    assert point.observed_times == 0
    assert feature.map_point is None
    assert point.id not in keymap.active_map_points()
    assert point.id in keymap.all_map_points()


def test_clean_map_counts_unobserved_points():
    keymap = Map(7)
    seen, unseen = MapPoint.create(), MapPoint.create()
    seen.add_observation(Feature(None, (0, 0)))
    keymap.insert_map_point(seen)
    keymap.insert_map_point(unseen)
    assert keymap.clean_map() == 1
    assert list(keymap.active_map_points()) == [seen.id]


def test_reinserting_keyframe_replaces_entry():
    keymap = Map(7)
    first = _keyframe(4)
    second = _keyframe(4)
    keymap.insert_keyframe(first)
    keymap.insert_keyframe(second)
    assert keymap.all_keyframes() == {4: second}


def test_removal_of_missing_frame_raises():
    keymap = Map(0)
    with pytest.raises(KeyError):
        keymap.insert_keyframe(_keyframe(3, (1.0, 0.0, 0.0)))