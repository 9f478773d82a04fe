import inspect
from typing import Dict, Any, List, Optional
from sklearn.ensemble import RandomForestRegressor, GradientBoostingRegressor
from sklearn.linear_model import LinearRegression

from utils.exceptions import ConfigurationError


class ModelFactory:
    """
    Factory for creating regression estimators and model adapters with a unified interface.
    """

    ESTIMATORS = {
        'LinearRegression': LinearRegression,
        'RandomForestRegressor': RandomForestRegressor,
        'GradientBoostingRegressor': GradientBoostingRegressor,
    }

    @classmethod
    def create(cls, model_name: str, params: Dict[str, Any] = None) -> Any:
        """
        Create and return an instantiated estimator.
        """
        if params is None:
            params = {}

        if model_name not in cls.ESTIMATORS:
            raise ValueError(f"Unknown model name: {model_name}. Available: {cls.get_available_models()}")

        model_class = cls.ESTIMATORS[model_name]
        return model_class(**cls._filter_params(model_class, params))

    @classmethod
    def get_available_models(cls) -> List[str]:
        """Return list of all supported estimator names."""
        return list(cls.ESTIMATORS.keys())

    @classmethod
    def get_adapter(cls, name: str, config: Optional[Dict[str, Any]] = None):
        """
        Return the adapter for a model family, with its search space taken
        from config['hyperparameters']['spaces'][name] where overridden.
        """
        # Imported here: adapters build their estimators through this factory
        from modules.model_factory.adapters import ADAPTERS

        if name not in ADAPTERS:
            raise ConfigurationError(f"Unknown model family: {name}. Available: {sorted(ADAPTERS)}")

        config = config or {}
        models_cfg = config.get('models', {})
        seeds = config.get('_internal_seeds', {})
        overrides = config.get('hyperparameters', {}).get('spaces', {}).get(name, {})

        return ADAPTERS[name](
            tree_count=models_cfg.get('fixed_tree_count', 500),
            random_state=seeds.get('model'),
            space_overrides=overrides,
        )

    @staticmethod
    def _filter_params(model_class, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Remove parameters from `params` that are not accepted by `model_class` constructor.
        """
        sig = inspect.signature(model_class.__init__)

        valid_keys = [
            p.name for p in sig.parameters.values()
            if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        ]

        if any(p.kind == p.VAR_KEYWORD for p in sig.parameters.values()):
            return params

        return {k: v for k, v in params.items() if k in valid_keys}
