"""
A "universal distance" between the objects this package builds: numbers,
lists, arrays and any MetricObject.  Solutions and interpolators compare
themselves through it, e.g. to check that two solution approaches agree.
"""
from warnings import warn

import numpy as np


def distance_lists(list_a, list_b):
    """
    Maximum distance between corresponding elements of two lists, or the
    difference in their lengths if they do not match.
    """
    len_a = len(list_a)
    len_b = len(list_b)
    if len_a == len_b:
        if len_a == 0:
            return 0.0
        return np.max([distance_metric(list_a[n], list_b[n]) for n in range(len_a)])
    return np.abs(len_a - len_b)


def distance_arrays(arr_a, arr_b):
    """
    Maximum absolute difference between corresponding elements of two arrays
    of the same shape.  Arrays with a different number of dimensions are
    10000 times the difference in dimensions apart; otherwise the distance is
    the summed difference in size along each dimension.
    """
    shape_A = arr_a.shape
    shape_B = arr_b.shape
    if shape_A == shape_B:
        if arr_a.size == 0:
            return 0.0
        return np.max(np.abs(arr_a - arr_b))

    if len(shape_A) != len(shape_B):
        return 10000 * np.abs(len(shape_A) - len(shape_B))

    dim_diffs = np.abs(np.array(shape_A) - np.array(shape_B))
    return np.sum(dim_diffs)


def distance_metric(thing_a, thing_b):
    """
    A "universal distance" metric that can be used as a default in many settings.

    Parameters
    ----------
    thing_a : object
        A generic object.
    thing_b : object
        Another generic object.

    Returns
    -------
    distance : float
        The "distance" between thing_a and thing_b.
    """
    if isinstance(thing_a, (int, float)) and isinstance(thing_b, (int, float)):
        return np.abs(thing_a - thing_b)

    if isinstance(thing_a, list) and isinstance(thing_b, list):
        return distance_lists(thing_a, thing_b)

    if isinstance(thing_a, np.ndarray) and isinstance(thing_b, np.ndarray):
        return distance_arrays(thing_a, thing_b)

    if isinstance(thing_a, type(thing_b)) and isinstance(thing_a, MetricObject):
        return thing_a.distance(thing_b)

    if callable(thing_a) and callable(thing_b):
        warn("Cannot compare plain functions. Returning large distance.")

    # Failsafe: the inputs are very far apart
    return 1000.0


class MetricObject:
    """
    A superclass for object classes in twoperiod.  Subclasses list the
    attributes that define them in distance_criteria.
    """

    distance_criteria = []  # This should be overwritten by subclasses.

    def distance(self, other):
        """
        A generic distance method, using the "universal distance" metric over
        the attributes named in distance_criteria.

        Parameters
        ----------
        other : object
            Another object to compare this instance to.

        Returns
        -------
        (unnamed) : float
            The distance between this object and another.
        """
        try:
            return np.max(
                [
                    distance_metric(getattr(self, attr_name), getattr(other, attr_name))
                    for attr_name in self.distance_criteria
                ]
            )
        except (AttributeError, ValueError):
            return 1000.0
