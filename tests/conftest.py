# tests/conftest.py
import os
import sys

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

dlq_common_path = os.path.join(project_root, 'src', 'libs', 'dlq-common')
if dlq_common_path not in sys.path:
    sys.path.insert(0, dlq_common_path)
