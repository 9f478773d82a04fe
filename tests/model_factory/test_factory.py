import pytest
from sklearn.ensemble import RandomForestRegressor, GradientBoostingRegressor
from sklearn.linear_model import LinearRegression
from modules.model_factory import (
    ModelFactory,
    LinearRegressionAdapter,
    RandomForestAdapter,
    GradientBoostingAdapter,
)
from utils.exceptions import ConfigurationError

def test_create_model():
    params = {'n_estimators': 10, 'random_state': 42}
    model = ModelFactory.create('RandomForestRegressor', params)

    assert isinstance(model, RandomForestRegressor)
    assert model.n_estimators == 10
    assert model.random_state == 42

def test_unknown_model_error():
    """Test error handling for unknown models."""
    with pytest.raises(ValueError, match="Unknown model name"):
        ModelFactory.create('SuperAdvancedAIModel')

def test_parameter_filtering():
    """LinearRegression has no random_state; the factory drops it instead of failing."""
    model = ModelFactory.create('LinearRegression', {'random_state': 123, 'fit_intercept': False})

    assert isinstance(model, LinearRegression)
    assert model.fit_intercept is False
    assert not hasattr(model, 'random_state')

def test_get_available_models():
    models = ModelFactory.get_available_models()
    assert 'GradientBoostingRegressor' in models
    assert 'RandomForestRegressor' in models
    assert 'LinearRegression' in models

@pytest.mark.parametrize("name, cls", [
    ('linear_regression', LinearRegressionAdapter),
    ('random_forest', RandomForestAdapter),
    ('gradient_boosting', GradientBoostingAdapter),
])
def test_get_adapter(name, cls):
    adapter = ModelFactory.get_adapter(name)
    assert isinstance(adapter, cls)
    assert adapter.name == name

def test_get_adapter_uses_config():
    config = {
        'models': {'fixed_tree_count': 25},
        '_internal_seeds': {'model': 77},
        'hyperparameters': {'spaces': {
            'gradient_boosting': {'max_tree_depth': {'type': 'int', 'low': 2, 'high': 4}},
        }},
    }
    adapter = ModelFactory.get_adapter('gradient_boosting', config)

    assert adapter.tree_count == 25
    assert adapter.random_state == 77
    depth = adapter.space().parameters[0]
    assert (depth.low, depth.high) == (2, 4)
    est = adapter.build(adapter.default_configuration(), n_features=3)
    assert isinstance(est, GradientBoostingRegressor)
    assert est.n_estimators == 25
    assert est.random_state == 77

def test_get_adapter_unknown_family():
    with pytest.raises(ConfigurationError, match="Unknown model family"):
        ModelFactory.get_adapter('svm')

def test_registry_holds_only_adapter_estimators():
    from modules.model_factory.adapters import ADAPTERS
    used = {cls.estimator_name for cls in ADAPTERS.values()}
    assert set(ModelFactory.get_available_models()) == used
