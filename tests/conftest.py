import numpy as np
import pandas as pd
import pytest

from churnscore.data import DataLoader


def _balanced_target(rng, n):
    y = np.repeat([0, 1], n // 2)
    rng.shuffle(y)
    return y


def _class_balanced_labels(rng, y, labels):
    """Labels split evenly inside each class, hence independent of ``y``."""
    out = np.empty(len(y), dtype=object)
    for cls in (0, 1):
        idx = np.where(y == cls)[0]
        values = np.resize(np.array(labels, dtype=object), len(idx))
        rng.shuffle(values)
        out[idx] = values
    return out


def make_churn_frame(n=1000, seed=42, n_flips=0):
    """
    Raw churn data: 5 numeric and 3 categorical features, 50/50 target
    labelled "yes"/"no", plus an id column.

    - ``separator`` is positive exactly when ``churn`` is "yes", except for
      ``n_flips`` rows per class; with no flips it separates the classes
    - ``channel`` is pure noise, evenly split within each class
    - ``constant`` never varies
    - ``balance`` is heavy tailed
    """
    rng = np.random.default_rng(seed)
    y = _balanced_target(rng, n)

    signal = y.copy()
    signal[rng.choice(np.where(y == 0)[0], n_flips, replace=False)] = 1
    signal[rng.choice(np.where(y == 1)[0], n_flips, replace=False)] = 0

    return pd.DataFrame(
        {
            "customer_id": np.arange(n),
            "separator": np.where(
                signal == 1, np.abs(rng.normal(1.0, 0.3, n)), -np.abs(rng.normal(1.0, 0.3, n))
            ),
            "age": np.round(rng.normal(38 + 6 * y, 9)).clip(18, 90),
            "balance": rng.lognormal(10 + 0.4 * y, 1.0),
            "products": rng.integers(1, 5, n),
            "constant": np.ones(n),
            "region": np.where(
                y == 1,
                rng.choice(["north", "south", "east", "west"], n, p=[0.4, 0.2, 0.2, 0.2]),
                rng.choice(["north", "south", "east", "west"], n, p=[0.2, 0.3, 0.25, 0.25]),
            ),
            "gender": rng.choice(["female", "male"], n),
            "channel": _class_balanced_labels(rng, y, ["app", "branch"]),
            "churn": np.where(y == 1, "yes", "no"),
        }
    )


def make_duplicate_frame(n=1000, seed=7):
    """Churn data with ``tenure_months`` an exact linear copy of ``tenure``."""
    rng = np.random.default_rng(seed)
    y = _balanced_target(rng, n)

    tenure = np.round(rng.normal(6 - 2.5 * y, 2.5)).clip(0, 10).astype(int)
    return pd.DataFrame(
        {
            "tenure": tenure,
            "tenure_months": tenure * 12,
            "age": np.round(rng.normal(38 + 6 * y, 9)).clip(18, 90),
            "products": rng.integers(1, 5, n),
            "gender": rng.choice(["female", "male"], n),
            "churn": y,
        }
    )


@pytest.fixture
def raw_churn_df():
    return make_churn_frame()


@pytest.fixture
def churn_data(raw_churn_df):
    """Cleaned churn data and its schema."""
    return DataLoader(drop_columns=["customer_id"]).clean(raw_churn_df)


@pytest.fixture
def churn_df(churn_data):
    return churn_data[0]


@pytest.fixture
def churn_schema(churn_data):
    return churn_data[1]


@pytest.fixture
def duplicate_data():
    return DataLoader().clean(make_duplicate_frame())


@pytest.fixture
def logistic_data():
    """Two informative features and one noise feature, not separable."""
    rng = np.random.default_rng(0)
    n = 600
    X = pd.DataFrame(
        {
            "x1": rng.normal(0, 1, n),
            "x2": rng.normal(0, 1, n),
            "x3": rng.normal(0, 1, n),
        }
    )
    logit = 1.2 * X["x1"] - 0.8 * X["x2"]
    y = pd.Series((rng.random(n) < 1 / (1 + np.exp(-logit))).astype(int), name="churn")
    return X, y


@pytest.fixture(scope="session")
def shared_churn_data():
    """Cleaned churn data shared across a session. Do not mutate."""
    return DataLoader(drop_columns=["customer_id"]).clean(make_churn_frame())


@pytest.fixture(scope="session")
def noisy_churn_data():
    """Churn data whose separator mislabels 10 rows per class. Do not mutate."""
    return DataLoader(drop_columns=["customer_id"]).clean(make_churn_frame(n_flips=10))
