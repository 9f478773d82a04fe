import json
import numpy as np
import pandas as pd
import pytest

from utils.file_io import NumpyEncoder, save_dataframe, read_dataframe, save_json

def test_numpy_encoder_handles_numpy_types():
    payload = {'i': np.int64(3), 'f': np.float32(0.5), 'b': np.bool_(True), 'a': np.arange(3)}
    decoded = json.loads(json.dumps(payload, cls=NumpyEncoder))
    assert decoded == {'i': 3, 'f': 0.5, 'b': True, 'a': [0, 1, 2]}

def test_save_and_read_parquet(tmp_path):
    df = pd.DataFrame({'a': [1, 2, 3], 'b': ['x', 'y', 'z']})
    path = save_dataframe(df, tmp_path / "nested" / "frame.parquet")
    assert path.exists()
    pd.testing.assert_frame_equal(read_dataframe(path), df)

def test_read_csv(tmp_path):
    path = tmp_path / "data.csv"
    pd.DataFrame({'q_mean': [1.0, 2.0]}).to_csv(path, index=False)
    assert read_dataframe(path)['q_mean'].tolist() == [1.0, 2.0]

def test_read_unsupported_extension(tmp_path):
    with pytest.raises(ValueError, match="Unsupported file extension"):
        read_dataframe(tmp_path / "data.txt")

def test_save_json(tmp_path):
    path = save_json({'rmse': np.float64(1.5)}, tmp_path / "out" / "m.json")
    assert json.loads(path.read_text()) == {'rmse': 1.5}
