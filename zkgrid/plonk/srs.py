"""
PLONK Structured Reference String (SRS)
=========================================

KZG 커밋먼트용 범용(universal) 공개 파라미터.

  SRS = {
      G1 powers: [G1, τ·G1, τ²·G1, ..., τ^d·G1]
      G2 powers: [G2, τ·G2]
  }

**로컬 배포용 결정론적 설정**:
  seed가 주어지면 τ = SHA-256(seed) mod r 로 결정론적으로 생성한다.
  같은 seed를 쓰는 Prover와 Verifier(온체인 검증자 에뮬레이터 포함)는
  같은 SRS를 공유한다. τ를 아는 사람은 거짓 증명을 만들 수 있으므로
  실제 배포에서는 MPC 세리머니 결과를 사용해야 한다.

사용 예시:
    >>> srs = SRS.generate(max_degree=16, seed=42)
    >>> len(srs.g1_powers)  # 17
"""

import hashlib
import logging
import secrets

from zkgrid.plonk.field import FR, G1, G2, ec_mul, CURVE_ORDER

logger = logging.getLogger(__name__)


class SRS:
    """Structured Reference String.

    속성:
        g1_powers: [G1, τ·G1, ..., τ^d·G1]
        g2_powers: [G2, τ·G2]
        max_degree: 지원하는 최대 다항식 차수 d
    """

    def __init__(self, g1_powers, g2_powers, max_degree):
        self.g1_powers = g1_powers
        self.g2_powers = g2_powers
        self.max_degree = max_degree

    @classmethod
    def generate(cls, max_degree, seed=None):
        """SRS를 생성한다.

        Args:
            max_degree: 지원할 최대 다항식 차수.
                        이 구현의 Prover가 커밋하는 최대 차수는 n + 5 이다.
            seed: 결정론적 생성을 위한 시드. None이면 무작위 τ.

        Returns:
            SRS
        """
        if seed is not None:
            h = hashlib.sha256(str(seed).encode()).digest()
            tau_int = int.from_bytes(h, "big") % CURVE_ORDER
        else:
            tau_int = secrets.randbelow(CURVE_ORDER - 1) + 1
        tau = FR(tau_int)

        logger.debug("generating SRS: max_degree=%d deterministic=%s",
                     max_degree, seed is not None)

        g1_powers = []
        tau_power = FR(1)
        for _ in range(max_degree + 1):
            g1_powers.append(ec_mul(G1, tau_power))
            tau_power = tau_power * tau

        g2_powers = [G2, ec_mul(G2, tau)]

        return cls(g1_powers, g2_powers, max_degree)
