import pytest

from roadbook.models.enrichment import EnrichmentResult, LocationNarrative, PlaceOfInterest
from roadbook.models.geo import Coordinate, Waypoint
from roadbook.services.map import MapView, MarkerReconciler, RouteLineState

PARIS = Coordinate(lat=48.8566, lng=2.3522)
LYON = Coordinate(lat=45.764, lng=4.8357)
NICE = Coordinate(lat=43.7102, lng=7.262)
LOUVRE = Coordinate(lat=48.8606, lng=2.3376)


def _waypoints(*pairs):
    return [Waypoint(id=i, coordinate=c, address=f"Address {i}") for i, c in pairs]


def _enrichment():
    return EnrichmentResult(
        narratives=[
            LocationNarrative(
                origin_address="Paris",
                places_of_interest=[
                    PlaceOfInterest(name="Louvre", address="Rue de Rivoli", coordinate=LOUVRE),
                    PlaceOfInterest(name="Lost", address="nowhere"),
                ],
            )
        ]
    )


def test_sync_waypoints_reports_added_removed_and_updated():
    reconciler = MarkerReconciler()

    first = reconciler.sync_waypoints(_waypoints(("a", PARIS), ("b", LYON)))
    assert first.added == ["a", "b"]

    renamed = [
        Waypoint(id="a", coordinate=PARIS, address="Paris, France"),
        Waypoint(id="c", coordinate=NICE, address="Nice"),
    ]
    second = reconciler.sync_waypoints(renamed)

    assert second.added == ["c"]
    assert second.removed == ["b"]
    assert second.updated == ["a"]
    assert reconciler.waypoint_markers["a"].label == "Paris, France"


def test_unchanged_waypoints_produce_empty_diff():
    reconciler = MarkerReconciler()
    waypoints = _waypoints(("a", PARIS), ("b", LYON))
    reconciler.sync_waypoints(waypoints)

    assert not reconciler.sync_waypoints(waypoints).changed


def test_waypoint_sync_leaves_poi_markers_and_route_line_alone():
    reconciler = MarkerReconciler()
    reconciler.sync_places(_enrichment())
    basis = (PARIS, LYON)
    reconciler.begin_computing(basis)
    reconciler.display(basis, [PARIS, LYON])

    reconciler.sync_waypoints(_waypoints(("a", PARIS)))

    assert list(reconciler.poi_markers) == [(0, 0)]
    assert reconciler.route_line.state == RouteLineState.DISPLAYED


def test_places_without_coordinate_get_no_marker():
    reconciler = MarkerReconciler()

    diff = reconciler.sync_places(_enrichment())

    assert diff.added == [(0, 0)]
    assert reconciler.unplaced_places == [(0, 1)]
    assert reconciler.sync_places(None).removed == [(0, 0)]
    assert reconciler.unplaced_places == []


def test_hover_emphasizes_and_recenters_at_same_zoom():
    reconciler = MarkerReconciler(view=MapView(center=NICE, zoom=9))
    reconciler.sync_waypoints(_waypoints(("a", PARIS), ("b", LYON)))
    reconciler.sync_places(_enrichment())

    assert reconciler.set_hover("b") is True
    assert reconciler.waypoint_markers["b"].emphasized
    assert reconciler.view.center == LYON
    assert reconciler.view.zoom == 9

    reconciler.set_hover((0, 0))
    assert not reconciler.waypoint_markers["b"].emphasized
    assert reconciler.poi_markers[(0, 0)].emphasized
    assert reconciler.view.center == LOUVRE

    reconciler.set_hover(None)
    assert not reconciler.poi_markers[(0, 0)].emphasized
    assert reconciler.hovered is None


def test_hover_on_same_key_is_a_no_op():
    reconciler = MarkerReconciler()
    reconciler.sync_waypoints(_waypoints(("a", PARIS)))
    reconciler.set_hover("a")

    assert reconciler.set_hover("a") is False


def test_removing_hovered_marker_clears_hover():
    reconciler = MarkerReconciler()
    reconciler.sync_waypoints(_waypoints(("a", PARIS), ("b", LYON)))
    reconciler.set_hover("a")

    reconciler.sync_waypoints(_waypoints(("b", LYON)))

    assert reconciler.hovered is None


def test_route_line_state_machine():
    reconciler = MarkerReconciler()
    basis = (PARIS, LYON)

    assert reconciler.route_line.state == RouteLineState.NO_ROUTE

    reconciler.begin_computing(basis)
    assert reconciler.route_line.state == RouteLineState.COMPUTING
    reconciler.display(basis, [PARIS, LYON])
    assert reconciler.route_line.state == RouteLineState.DISPLAYED

    new_basis = (PARIS, LYON, NICE)
    reconciler.begin_computing(new_basis)
    reconciler.clear_route()
    assert reconciler.route_line.state == RouteLineState.NO_ROUTE
    assert reconciler.route_line.path == []


def test_illegal_route_line_transitions_raise():
    reconciler = MarkerReconciler()
    basis = (PARIS, LYON)

    with pytest.raises(RuntimeError):
        reconciler.display(basis, [PARIS, LYON])

    reconciler.begin_computing(basis)
    reconciler.display(basis, [PARIS, LYON])
    with pytest.raises(RuntimeError):
        reconciler.begin_computing(basis)
