# Copyright© 2025-2026 Gesellschaft zur Förderung der angewandten Forschung e.V.
# acting on behalf of its Fraunhofer Institut für Graphische Datenverarbeitung.
# Licensed under the EUPL. See LICENSE.txt.

import numpy as np
from .flowspectrum import FlowSpectrum

flowspectrum = FlowSpectrum[np.typing.NDArray](np)
