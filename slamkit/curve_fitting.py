"""Fitting ``y = exp(a*x^2 + b*x + c)`` to noisy samples by nonlinear least squares."""

from __future__ import annotations

import argparse
import logging
import time
from dataclasses import dataclass

import numpy as np

logger = logging.getLogger(__name__)

TRUE_PARAMS = (1.0, 2.0, 1.0)
INITIAL_GUESS = (2.0, -1.0, 5.0)


@dataclass(frozen=True)
class FitResult:
    """Estimated parameters, the sum of squared errors there and the updates applied."""

    params: np.ndarray
    cost: float
    iterations: int


def model(abc, x):
    """Evaluate ``exp(a*x^2 + b*x + c)`` at ``x`` (scalar or array)."""
    a, b, c = np.asarray(abc, dtype=float)
    x = np.asarray(x, dtype=float)
    return np.exp(a * x * x + b * x + c)


def generate_data(a=1.0, b=2.0, c=1.0, n=100, sigma=1.0, seed=None):
    """Samples at ``x = i / 100`` with Gaussian noise of standard deviation ``sigma**2``."""
    if n < 0:
        raise ValueError("number of samples must not be negative")
    rng = np.random.default_rng(seed)
    x = np.arange(n) / 100.0
    y = model((a, b, c), x) + rng.normal(0.0, sigma * sigma, size=n)
    return x, y


def _prepare(x_data, y_data):
    x = np.asarray(x_data, dtype=float).reshape(-1)
    y = np.asarray(y_data, dtype=float).reshape(-1)
    if x.shape != y.shape:
        raise ValueError("x_data and y_data must have the same length")
    if x.size == 0:
        raise ValueError("at least one sample is needed")
    return x, y


def _residuals_and_jacobian(abc, x, y):
    with np.errstate(over="ignore", invalid="ignore"):
        f = model(abc, x)
        error = y - f
        jacobian = -np.column_stack([x * x * f, x * f, f])
    return error, jacobian


def gauss_newton(x_data, y_data, initial=INITIAL_GUESS, iterations=100, inv_sigma=1.0):
    """Gauss-Newton iteration, stopping as soon as the cost stops decreasing."""
    x, y = _prepare(x_data, y_data)
    params = np.asarray(initial, dtype=float).copy()
    weight = inv_sigma * inv_sigma
    last_cost = 0.0
    applied = 0
    for it in range(iterations):
        error, jacobian = _residuals_and_jacobian(params, x, y)
        cost = float(error @ error)
        hessian = weight * jacobian.T @ jacobian
        bias = -weight * jacobian.T @ error
        try:
            dx = np.linalg.solve(hessian, bias)
        except np.linalg.LinAlgError:
            dx = np.full(3, np.nan)
        if np.isnan(dx[0]):
            logger.info("result is nan!")
            break
        if it > 0 and cost >= last_cost:
            logger.info("cost: %g >= last cost: %g, break.", cost, last_cost)
            break
        params = params + dx
        last_cost = cost
        applied += 1
        logger.debug("total cost: %g, update: %s, estimated params: %s", cost, dx, params)
    error, _ = _residuals_and_jacobian(params, x, y)
    return FitResult(params, float(error @ error), applied)


def levenberg_marquardt(x_data, y_data, initial=INITIAL_GUESS, iterations=50):
    """Levenberg-Marquardt with multiplicative damping updates."""
    x, y = _prepare(x_data, y_data)
    params = np.asarray(initial, dtype=float).copy()
    error, jacobian = _residuals_and_jacobian(params, x, y)
    cost = float(error @ error)
    hessian = jacobian.T @ jacobian
    damping = 1e-3 * float(np.max(np.diag(hessian))) if np.all(np.isfinite(hessian)) else 1.0
    applied = 0
    for _ in range(iterations):
        hessian = jacobian.T @ jacobian
        gradient = jacobian.T @ error
        system = hessian + damping * np.diag(np.diag(hessian))
        try:
            dx = np.linalg.solve(system, -gradient)
        except np.linalg.LinAlgError:
            break
        if not np.all(np.isfinite(dx)):
            break
        candidate = params + dx
        new_error, new_jacobian = _residuals_and_jacobian(candidate, x, y)
        new_cost = float(new_error @ new_error)
        if np.isfinite(new_cost) and new_cost < cost:
            params, error, jacobian, cost = candidate, new_error, new_jacobian, new_cost
            damping = max(damping * 0.1, 1e-15)
            applied += 1
            if np.linalg.norm(dx) < 1e-12 * (np.linalg.norm(params) + 1e-12):
                break
        else:
            damping *= 10.0
            if damping > 1e32:
                break
    return FitResult(params, cost, applied)


def main(argv=None):
    """Generate samples, fit them and print the estimate."""
    parser = argparse.ArgumentParser(description="Fit exp(a x^2 + b x + c) to noisy data.")
    parser.add_argument("--method", choices=("gn", "lm"), default="gn")
    parser.add_argument("--samples", type=int, default=100)
    parser.add_argument("--sigma", type=float, default=1.0)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)

    x, y = generate_data(*TRUE_PARAMS, n=args.samples, sigma=args.sigma, seed=args.seed)
    start = time.perf_counter()
    if args.method == "gn":
        result = gauss_newton(x, y, INITIAL_GUESS, 100, 1.0 / args.sigma)
    else:
        result = levenberg_marquardt(x, y, INITIAL_GUESS, 50)
    elapsed = time.perf_counter() - start
    print(f"solve time cost = {elapsed} seconds. ")
    a, b, c = result.params
    print(f"estimated abc = {a}, {b}, {c}")
    return 0