"""
Utility package setup.

Enables pandas Copy-on-Write globally so fold slices of the training frame
stay cheap views until a stage writes to them.
"""

import pandas as pd

# Copy-on-Write is the only mode from pandas 3 on, where setting the option is deprecated
if int(pd.__version__.split('.')[0]) < 3:
    pd.options.mode.copy_on_write = True
