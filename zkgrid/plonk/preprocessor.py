"""
PLONK 전처리기 (Preprocessor)
===============================

회로 구조로부터 셀렉터 다항식과 순열 다항식을 한 번만 계산하고 커밋한다.

**전처리 출력물**:
  - 셀렉터 커밋먼트: [q_L]₁, [q_R]₁, [q_O]₁, [q_M]₁, [q_C]₁
  - 순열 커밋먼트: [S_σ1]₁, [S_σ2]₁, [S_σ3]₁
  - 도메인 정보: n, ω
  - 셀렉터/순열 다항식 자체 (Prover 전용)

Prover는 다항식 원본을, Verifier는 커밋먼트만 사용한다
(검증 키 추출은 zkgrid.proving.VerificationKey 참고).
"""

import logging

from zkgrid.plonk.field import get_root_of_unity, get_roots_of_unity
from zkgrid.plonk.polynomial import Polynomial
from zkgrid.plonk.kzg import commit
from zkgrid.plonk.permutation import build_permutation_polynomials
from zkgrid.plonk.utils import next_power_of_2

logger = logging.getLogger(__name__)


class PreprocessedData:
    """전처리된 회로 데이터.

    속성 (도메인):
        n, omega, domain

    속성 (셀렉터 다항식 + 커밋먼트):
        q_l_poly, q_r_poly, q_o_poly, q_m_poly, q_c_poly
        q_l_comm, q_r_comm, q_o_comm, q_m_comm, q_c_comm

    속성 (순열):
        sigma: 길이 3n 순열
        sigma_evals: (S_σ1, S_σ2, S_σ3) 평가값
        s_sigma1_poly, s_sigma2_poly, s_sigma3_poly
        s_sigma1_comm, s_sigma2_comm, s_sigma3_comm

    속성 (회로 정보):
        num_public_inputs
    """
    pass


def preprocess(circuit, srs):
    """회로를 전처리하여 공개 파라미터를 생성한다.

    회로 객체는 변경하지 않는다. 게이트 수가 2의 거듭제곱이 아니면
    셀렉터가 모두 0인 패딩 게이트를 가상으로 덧붙인다.

    Args:
        circuit: Circuit
        srs: SRS

    Returns:
        PreprocessedData
    """
    result = PreprocessedData()

    # ── 1단계: 도메인 설정 ──
    n = next_power_of_2(max(circuit.n, 2))
    result.n = n
    result.omega = get_root_of_unity(n)
    result.domain = get_roots_of_unity(n)

    logger.info("preprocessing circuit: %d gates, domain size %d", circuit.n, n)

    # ── 2단계: 셀렉터 다항식 ──
    q_l_evals, q_r_evals, q_o_evals, q_m_evals, q_c_evals = (
        circuit.get_selector_polynomials(n)
    )

    result.q_l_poly = Polynomial.from_evaluations(q_l_evals, result.omega)
    result.q_r_poly = Polynomial.from_evaluations(q_r_evals, result.omega)
    result.q_o_poly = Polynomial.from_evaluations(q_o_evals, result.omega)
    result.q_m_poly = Polynomial.from_evaluations(q_m_evals, result.omega)
    result.q_c_poly = Polynomial.from_evaluations(q_c_evals, result.omega)

    result.q_l_comm = commit(result.q_l_poly, srs)
    result.q_r_comm = commit(result.q_r_poly, srs)
    result.q_o_comm = commit(result.q_o_poly, srs)
    result.q_m_comm = commit(result.q_m_poly, srs)
    result.q_c_comm = commit(result.q_c_poly, srs)

    # ── 3단계: 순열 다항식 ──
    result.sigma = circuit.build_copy_constraints(n)
    result.sigma_evals = build_permutation_polynomials(result.sigma, n, result.domain)
    s1_evals, s2_evals, s3_evals = result.sigma_evals

    result.s_sigma1_poly = Polynomial.from_evaluations(s1_evals, result.omega)
    result.s_sigma2_poly = Polynomial.from_evaluations(s2_evals, result.omega)
    result.s_sigma3_poly = Polynomial.from_evaluations(s3_evals, result.omega)

    result.s_sigma1_comm = commit(result.s_sigma1_poly, srs)
    result.s_sigma2_comm = commit(result.s_sigma2_poly, srs)
    result.s_sigma3_comm = commit(result.s_sigma3_poly, srs)

    result.num_public_inputs = circuit.num_public_inputs

    return result
