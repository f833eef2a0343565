"""
Enrollment Models: Linear, Decision Tree, Gradient Boosting
===========================================================

Three regressors explain daily enrollments from page views, clicks, the
experiment flag and day of week. All three go through the same runner:

    estimator.fit(X_train, y_train) -> estimator.predict(X_test) -> metrics

so any object with scikit-learn style ``fit``/``predict`` can be plugged in
through the ``model`` argument.

Example Usage:
--------------
>>> from ab_enrollment.models import estimators
>>>
>>> results, table = estimators.compare_models(train, test, random_state=42)
>>> print(table[['mae', 'rmse', 'r2']])
>>> print(results['gbm']['feature_importance'].head())
"""

import numpy as np
import pandas as pd
from typing import Dict, List, Optional, Tuple, Any
from sklearn.ensemble import GradientBoostingRegressor
from sklearn.linear_model import LinearRegression
from sklearn.metrics import (
    mean_absolute_error,
    mean_absolute_percentage_error,
    mean_squared_error,
    r2_score,
)
from sklearn.tree import DecisionTreeRegressor

from ab_enrollment.data.preparation import OUTCOME_COL, ROW_ID_COL


MODEL_TYPES = ['linear', 'tree', 'gbm']

MODEL_LABELS = {
    'linear': 'Linear Regression',
    'tree': 'Decision Tree',
    'gbm': 'Gradient Boosting',
}


def make_estimator(model_type: str = 'linear', random_state: Optional[int] = None) -> Any:
    """
    Build an unfitted regressor for one of the supported model types.

    Parameters
    ----------
    model_type : {'linear', 'tree', 'gbm'}, default='linear'
        LinearRegression, DecisionTreeRegressor or GradientBoostingRegressor
    random_state : int, optional
        Random seed (ignored by the linear model)

    Returns
    -------
    sklearn estimator
        Unfitted model with fit/predict

    Notes
    -----
    - The tree stops splitting nodes under 20 rows and keeps at least 7
      rows per leaf
    - The boosted model uses shallow trees (max_depth=3) with shrinkage 0.1
    """
    if model_type == 'linear':
        return LinearRegression()
    elif model_type == 'tree':
        return DecisionTreeRegressor(
            min_samples_split=20,
            min_samples_leaf=7,
            random_state=random_state
        )
    elif model_type == 'gbm':
        return GradientBoostingRegressor(
            n_estimators=100,
            max_depth=3,
            learning_rate=0.1,
            random_state=random_state
        )
    else:
        raise ValueError(f"model_type must be one of {MODEL_TYPES}, got '{model_type}'")


def build_feature_matrix(
    df: pd.DataFrame,
    target: str = OUTCOME_COL,
) -> Tuple[pd.DataFrame, pd.Series]:
    """
    Split a prepared frame into a numeric feature matrix and target.

    ``row_id`` is dropped so the model cannot use it as a proxy index.
    ``day_of_week`` is one-hot encoded over its full category domain with
    the first level (Sun) as reference, so train and test always share the
    same columns.

    Returns
    -------
    tuple
        (X, y) with X as float DataFrame and y as Series
    """
    if target not in df.columns:
        raise ValueError(f"DataFrame must have a '{target}' column")

    X = df.drop(columns=[target, ROW_ID_COL], errors='ignore')

    if 'day_of_week' in X.columns:
        X = pd.get_dummies(X, columns=['day_of_week'], drop_first=True, dtype=float)

    return X.astype(float), df[target]


def regression_metrics(y_true: np.ndarray, y_pred: np.ndarray) -> Dict[str, float]:
    """
    Accuracy metrics for predicted enrollments.

    Returns
    -------
    dict
        - mae: Mean absolute error
        - rmse: Root mean squared error
        - r2: Coefficient of determination
        - mape: Mean absolute percentage error
    """
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float)

    if len(y_true) != len(y_pred):
        raise ValueError("y_true and y_pred must have same length")
    if len(y_true) == 0:
        raise ValueError("Need at least one observation")

    return {
        'mae': mean_absolute_error(y_true, y_pred),
        'rmse': float(np.sqrt(mean_squared_error(y_true, y_pred))),
        'r2': r2_score(y_true, y_pred) if len(y_true) > 1 else np.nan,
        'mape': mean_absolute_percentage_error(y_true, y_pred),
    }


def feature_importance(model: Any, feature_names: List[str]) -> pd.DataFrame:
    """
    Rank features by importance for a fitted model.

    Linear models are ranked by absolute coefficient (the signed coefficient
    is kept alongside); tree models by impurity-based importance.
    """
    if hasattr(model, 'feature_importances_'):
        table = pd.DataFrame({
            'feature': feature_names,
            'importance': model.feature_importances_,
        })
    elif hasattr(model, 'coef_'):
        coef = np.ravel(model.coef_)
        table = pd.DataFrame({
            'feature': feature_names,
            'importance': np.abs(coef),
            'coefficient': coef,
        })
    else:
        raise ValueError(
            f"{type(model).__name__} exposes neither feature_importances_ nor coef_"
        )

    return table.sort_values('importance', ascending=False).reset_index(drop=True)


def run_model(
    train: pd.DataFrame,
    test: pd.DataFrame,
    model_type: str = 'linear',
    target: str = OUTCOME_COL,
    random_state: Optional[int] = None,
    model: Optional[object] = None,
) -> Dict[str, Any]:
    """
    Fit a model on the training set and evaluate it on the test set.

    Parameters
    ----------
    train : pd.DataFrame
        Training rows from ``preparation.split_train_test``
    test : pd.DataFrame
        Test rows from ``preparation.split_train_test``
    model_type : {'linear', 'tree', 'gbm'}, default='linear'
        Model type to build. Used only as a label if ``model`` is given.
    target : str, default='enrollments'
        Outcome column
    random_state : int, optional
        Random seed for the tree-based models
    model : object, optional
        Any estimator with fit/predict. Overrides model_type.

    Returns
    -------
    dict
        Dictionary with keys:
        - model_type: Model type label
        - model: Fitted estimator
        - features: Feature column names
        - predictions: Test predictions as a Series indexed by row_id
        - mae, rmse, r2, mape: Test-set metrics
        - feature_importance: DataFrame ranked by importance

    Example
    -------
    >>> result = run_model(train, test, model_type='tree', random_state=42)
    >>> print(f"MAE: {result['mae']:.1f} enrollments/day")
    """
    if len(train) == 0 or len(test) == 0:
        raise ValueError("train and test must both be non-empty")

    if model is None:
        model = make_estimator(model_type, random_state=random_state)

    X_train, y_train = build_feature_matrix(train, target=target)
    X_test, y_test = build_feature_matrix(test, target=target)

    if list(X_train.columns) != list(X_test.columns):
        raise ValueError("train and test produce different feature columns")

    model.fit(X_train, y_train)
    y_pred = model.predict(X_test)

    index = test[ROW_ID_COL].to_numpy() if ROW_ID_COL in test.columns else test.index
    predictions = pd.Series(y_pred, index=pd.Index(index, name=ROW_ID_COL),
                            name=f'predicted_{target}')

    result = {
        'model_type': model_type,
        'model': model,
        'features': list(X_train.columns),
        'predictions': predictions,
    }
    result.update(regression_metrics(y_test, y_pred))
    result['feature_importance'] = feature_importance(model, list(X_train.columns))

    return result


def compare_models(
    train: pd.DataFrame,
    test: pd.DataFrame,
    model_types: Optional[List[str]] = None,
    target: str = OUTCOME_COL,
    random_state: Optional[int] = None,
) -> Tuple[Dict[str, Dict[str, Any]], pd.DataFrame]:
    """
    Run several model types on the same split and tabulate their metrics.

    Returns
    -------
    tuple
        (results keyed by model_type, metrics table indexed by model_type and
        sorted by MAE ascending)
    """
    if model_types is None:
        model_types = MODEL_TYPES
    if len(model_types) == 0:
        raise ValueError("model_types must not be empty")

    results = {}
    for model_type in model_types:
        results[model_type] = run_model(
            train, test,
            model_type=model_type,
            target=target,
            random_state=random_state
        )

    table = pd.DataFrame(
        [
            {
                'model_type': name,
                'model': MODEL_LABELS.get(name, name),
                'mae': res['mae'],
                'rmse': res['rmse'],
                'r2': res['r2'],
                'mape': res['mape'],
            }
            for name, res in results.items()
        ]
    ).set_index('model_type').sort_values('mae')

    return results, table
