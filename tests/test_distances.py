import numpy as np
import pytest

from attribute_clustering import distances
from attribute_clustering.distances import (
    available_distance_methods,
    correlation_distance,
    euclidean_distance,
    get_distance_method,
    jaccard_distance,
    register_distance_method,
)
from attribute_clustering.errors import ConfigurationError


@pytest.fixture
def registry(monkeypatch):
    """Isolated copy of the method registry."""
    monkeypatch.setattr(distances, "_distance_methods", dict(distances._distance_methods))
    return distances._distance_methods


def test_jaccard_distance_on_significant_positions():
    u = np.array([1.0, 0.5, 0.0, 0.0])
    v = np.array([1.0, 0.0, 2.0, 0.0])
    # union {0, 1, 2}, intersection {0}
    assert pytest.approx(jaccard_distance(u, v)) == 2.0 / 3.0


def test_jaccard_distance_threshold():
    u = np.array([0.9, 0.2])
    v = np.array([0.8, 0.9])
    assert jaccard_distance(u, v) == 0.0
    assert pytest.approx(jaccard_distance(u, v, threshold=0.5)) == 0.5


def test_jaccard_distance_without_significant_positions_is_zero():
    assert jaccard_distance(np.zeros(3), np.full(3, -1.0)) == 0.0


def test_euclidean_and_correlation():
    assert euclidean_distance(np.array([0.0, 0.0]), np.array([3.0, 4.0])) == 5.0
    assert pytest.approx(correlation_distance(np.array([1.0, 2.0, 3.0]), np.array([3.0, 2.0, 1.0]))) == 2.0


@pytest.mark.parametrize("name", ["jaccard", "euclidean", "correlation", "cosine"])
def test_registered_methods_are_commutative_and_zero_on_equal_vectors(name):
    method = get_distance_method(name)
    rng = np.random.default_rng(0)
    u = rng.normal(size=10)
    v = rng.normal(size=10)
    assert method(u, v) == pytest.approx(method(v, u))
    assert method(u, u) == pytest.approx(0.0, abs=1e-12)


def test_get_distance_method_by_name_is_case_insensitive():
    assert get_distance_method("Euclidean") is euclidean_distance


def test_get_distance_method_passes_callables_through():
    def custom(u, v):
        return 0.0

    assert get_distance_method(custom) is custom


@pytest.mark.parametrize("method", ["hamming-ish", None, 3])
def test_get_distance_method_rejects_unknown(method):
    with pytest.raises(ConfigurationError):
        get_distance_method(method)


def test_register_distance_method(registry):
    def chebyshev(u, v):
        return float(np.max(np.abs(u - v)))

    register_distance_method("Chebyshev", chebyshev)

    assert "chebyshev" in available_distance_methods()
    assert get_distance_method("chebyshev") is chebyshev

    with pytest.raises(ConfigurationError):
        register_distance_method("chebyshev", chebyshev)
    with pytest.raises(ConfigurationError):
        register_distance_method("broken", "not callable")
