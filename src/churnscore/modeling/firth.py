"""
Firth penalized-likelihood logistic regression.

Maximizes ``loglik(beta) + 0.5 * log|I(beta)|`` (Jeffreys prior). Unlike the
plain MLE, the estimates stay finite under complete or quasi-complete
separation, so Wald statistics remain usable for significance testing.
"""

from typing import Dict, Optional, Tuple

import numpy as np
from scipy import stats
from scipy.special import expit

from churnscore.config import MODELING

_MAX_HALVINGS = 30


def _penalized_loglik(
    X: np.ndarray, y: np.ndarray, w: np.ndarray, beta: np.ndarray
) -> Tuple[float, np.ndarray, np.ndarray]:
    eta = X @ beta
    p = expit(eta)
    loglik = -np.sum(w * (y * np.logaddexp(0, -eta) + (1 - y) * np.logaddexp(0, eta)))
    info = X.T @ (X * (w * p * (1 - p))[:, None])
    sign, logdet = np.linalg.slogdet(info)
    if sign <= 0:
        return -np.inf, p, info
    return loglik + 0.5 * logdet, p, info


def firth_logit(
    exog: np.ndarray,
    endog: np.ndarray,
    weights: Optional[np.ndarray] = None,
    maxiter: int = MODELING.DEFAULT_MAXITER,
    tol: float = 1e-8,
) -> Dict[str, np.ndarray]:
    """
    Fit a Firth logistic regression by Newton steps with step halving.

    Parameters
    ----------
    exog : np.ndarray
        Design matrix of full column rank, intercept included if wanted.
    endog : np.ndarray
        Binary response (0/1).
    weights : np.ndarray, optional
        Frequency weights.
    maxiter : int
        Maximum Newton iterations.
    tol : float
        Convergence tolerance on the largest parameter change.

    Returns
    -------
    dict
        ``coefficient``, ``std_error``, ``z_value``, ``p_value``,
        ``ci_lower``, ``ci_upper`` (one entry per column, Wald statistics
        from the penalized information matrix), plus ``converged`` and
        ``n_iter``.

    Raises
    ------
    np.linalg.LinAlgError
        The information matrix is singular at the start.
    """
    X = np.asarray(exog, dtype=float)
    y = np.asarray(endog, dtype=float)
    w = np.ones(len(y)) if weights is None else np.asarray(weights, dtype=float)

    beta = np.zeros(X.shape[1])
    objective, p, info = _penalized_loglik(X, y, w, beta)
    if not np.isfinite(objective):
        raise np.linalg.LinAlgError("Information matrix is singular")

    converged = False
    n_iter = 0
    for n_iter in range(1, maxiter + 1):
        cov = np.linalg.inv(info)
        hat = w * p * (1 - p) * np.einsum("ij,jk,ik->i", X, cov, X)
        score = X.T @ (w * (y - p) + hat * (0.5 - p))
        step = cov @ score

        for _ in range(_MAX_HALVINGS):
            candidate = beta + step
            new_objective, new_p, new_info = _penalized_loglik(X, y, w, candidate)
            if new_objective >= objective:
                break
            step = step / 2
        else:
            # No ascent direction left: at the optimum up to rounding
            converged = True
            break

        beta, objective, p, info = candidate, new_objective, new_p, new_info
        if np.max(np.abs(step)) < tol:
            converged = True
            break

    bse = np.sqrt(np.diag(np.linalg.inv(info)))
    z = beta / bse
    z_crit = stats.norm.ppf(0.975)
    return {
        "coefficient": beta,
        "std_error": bse,
        "z_value": z,
        "p_value": 2 * stats.norm.sf(np.abs(z)),
        "ci_lower": beta - z_crit * bse,
        "ci_upper": beta + z_crit * bse,
        "converged": converged,
        "n_iter": n_iter,
    }
