# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

def check_pos(msg: str, value: int | float):
    if value <= 0:
        raise ValueError(f"{msg} must be above zero, got {value}")

def check_non_neg(msg: str, value: int | float):
    if value < 0:
        raise ValueError(f"{msg} must be a positive, got {value}")

def check_open_unit(msg: str, value: float):
    if not 0.0 < value < 1.0:
        raise ValueError(f"{msg} must lie in the open interval (0, 1), got {value}")
