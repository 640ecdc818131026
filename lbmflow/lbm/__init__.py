from .errors import *
from .stencil import *
from .grid import *
from .lattice import *
from .boundary import *
from .distribution import *
from .stream import *
from .collisions import *
from .publisher import *
from .diagnostics import *
from .simulation import *
