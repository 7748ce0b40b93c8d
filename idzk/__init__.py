__version__ = "0.1.0"
__title__ = "idzk"
__author__ = "idzk contributors"
__email__ = "idzk@users.noreply.github.com"
__url__ = "https://github.com/idzk/idzk"
__license__ = "MIT"
__description__ = "Sigma-protocol zero-knowledge proofs for decentralized identity: Schnorr, Pedersen, range and set-membership proofs."
__copyright__ = "2026, idzk contributors"


from idzk.config import EngineConfig
from idzk.engine import ZKEngine
from idzk.statement import ZKStatement, ProofRequest
from idzk.records import ZKProof, VerificationResult
