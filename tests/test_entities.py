import gc

import numpy as np

from slamkit.entities import Feature, Frame, MapPoint
from slamkit.lie import SE3


def test_frame_create_assigns_consecutive_ids():
    first = Frame.create()
    second = Frame.create()
    assert second.id == first.id + 1
    assert not first.is_keyframe


def test_set_keyframe_assigns_consecutive_keyframe_ids():
    a, b = Frame.create(), Frame.create()
    a.set_keyframe()
    b.set_keyframe()
    assert a.is_keyframe and b.is_keyframe
    assert b.keyframe_id == a.keyframe_id + 1


def test_frame_pose_defaults_to_identity_and_can_be_set():
    frame = Frame()
    np.testing.assert_allclose(frame.pose.matrix(), np.eye(4))
    pose = SE3(None, [1.0, 2.0, 3.0])
    frame.pose = pose
    np.testing.assert_allclose(frame.pose.translation, [1.0, 2.0, 3.0])


def test_frame_constructor_keeps_arguments():
    frame = Frame(5, 1.5, None, "left", "right")
    assert (frame.id, frame.time_stamp, frame.left_img, frame.right_img) == (5, 1.5, "left", "right")
    assert frame.features_left == [] and frame.features_right == []


def test_feature_holds_weak_reference_to_frame():
    frame = Frame()
    feature = Feature(frame, (3.0, 4.0))
    assert feature.frame is frame
    np.testing.assert_array_equal(feature.position, [3.0, 4.0])
    assert feature.is_on_left_image and not feature.is_outlier
    del frame
    gc.collect()
    assert feature.frame is None


def test_map_point_create_ids_and_position():
    a, b = MapPoint.create(), MapPoint.create()
    assert b.id == a.id + 1
    a.pos = [1.0, 2.0, 3.0]
    np.testing.assert_array_equal(a.pos, [1.0, 2.0, 3.0])
    np.testing.assert_array_equal(MapPoint(3, [4, 5, 6]).pos, [4.0, 5.0, 6.0])


def test_add_and_remove_observation():
    point = MapPoint.create()
    f1, f2 = Feature(None, (0, 0)), Feature(None, (1, 1))
    f1.map_point = point
    f2.map_point = point
    point.add_observation(f1)
    point.add_observation(f2)
    assert point.observed_times == 2
    assert point.observations() == [f1, f2]

    point.remove_observation(f1)
    assert point.observed_times == 1
    assert f1.map_point is None
    assert f2.map_point is point
    assert point.observations() == [f2]


def test_remove_unknown_observation_is_ignored():
    point = MapPoint.create()
    known, unknown = Feature(None, (0, 0)), Feature(None, (1, 1))
    point.add_observation(known)
    unknown.map_point = point
    point.remove_observation(unknown)
    assert point.observed_times == 1
    assert unknown.map_point is point


def test_feature_map_point_link_is_weak():
    feature = Feature(None, (0, 0))
    point = MapPoint.create()
    feature.map_point = point
    del point
    gc.collect()
    assert feature.map_point is None