"""
Artificial Landscapes
=====================

Analytic functions with known minima, used to check that optimization
functions actually converge. Points are column vectors of shape (dims, 1),
the same 2D buffers optimizers work on.

Functions implemented:
- Sphere: sum of squares, convex, minimum 0 at the origin
- Beale: 2D, minimum 0 at (3, 0.5)
- Rosenbrock: 2D banana valley, minimum 0 at (a, a^2)
"""

import numpy as np


class Landscape:
    """Base class for artificial landscapes."""

    dims = None

    def value(self, x):
        raise NotImplementedError

    def gradient(self, x):
        raise NotImplementedError

    def argmin(self):
        """Location of the global minimum, shape (dims, 1)."""
        raise NotImplementedError

    def min_value(self):
        return self.value(self.argmin())

    def _check(self, x):
        x = np.asarray(x, dtype=np.float64)
        if x.shape != (self.dims, 1):
            raise ValueError(f"{type(self).__name__} expects a point of shape ({self.dims}, 1), got {x.shape}")
        return x


class Sphere(Landscape):
    """
    Sphere function: f(x) = sum(x_i^2)

    Args:
        dims: Number of dimensions
    """

    def __init__(self, dims):
        self.dims = dims

    def value(self, x):
        x = self._check(x)
        return float(np.sum(x ** 2))

    def gradient(self, x):
        x = self._check(x)
        return 2 * x

    def argmin(self):
        return np.zeros((self.dims, 1))


class Beale(Landscape):
    """
    Beale function:
        f(x, y) = (1.5 - x + xy)^2 + (2.25 - x + xy^2)^2 + (2.625 - x + xy^3)^2
    """

    dims = 2

    def _terms(self, x):
        a, b = self._check(x)[:, 0]
        t1 = 1.5 - a + a * b
        t2 = 2.25 - a + a * b ** 2
        t3 = 2.625 - a + a * b ** 3
        return a, b, t1, t2, t3

    def value(self, x):
        _, _, t1, t2, t3 = self._terms(x)
        return float(t1 ** 2 + t2 ** 2 + t3 ** 2)

    def gradient(self, x):
        a, b, t1, t2, t3 = self._terms(x)
        da = 2 * t1 * (b - 1) + 2 * t2 * (b ** 2 - 1) + 2 * t3 * (b ** 3 - 1)
        db = 2 * t1 * a + 4 * t2 * a * b + 6 * t3 * a * b ** 2
        return np.array([[da], [db]])

    def argmin(self):
        return np.array([[3.0], [0.5]])


class Rosenbrock(Landscape):
    """
    Rosenbrock function: f(x, y) = (a - x)^2 + b * (y - x^2)^2

    Args:
        a: Position of the minimum along x (default: 1)
        b: Steepness of the valley walls (default: 100)
    """

    dims = 2

    def __init__(self, a=1.0, b=100.0):
        self.a = a
        self.b = b

    def value(self, x):
        u, v = self._check(x)[:, 0]
        return float((self.a - u) ** 2 + self.b * (v - u ** 2) ** 2)

    def gradient(self, x):
        u, v = self._check(x)[:, 0]
        du = -2 * (self.a - u) - 4 * self.b * u * (v - u ** 2)
        dv = 2 * self.b * (v - u ** 2)
        return np.array([[du], [dv]])

    def argmin(self):
        return np.array([[self.a], [self.a ** 2]])
