"""
PLONK 기반 모듈: 다항식(Polynomial) 클래스 및 FFT
===================================================

증명 생성에 사용되는 모든 다항식 연산을 제공한다.

**Polynomial 클래스**:
  계수 표현 p(x) = c₀ + c₁·x + c₂·x² + ...
  산술 연산자(+, -, *, 스칼라곱)와 평가(evaluation)를 지원한다.

**곱셈 전략**:
  작은 다항식은 나이브 O(n²) 합성곱, 양쪽 모두 FFT_THRESHOLD 이상의
  계수를 가지면 FFT 기반 O(n log n) 곱셈을 사용한다.
  Poseidon2 회로(n = 256 ~ 1024)의 몫 다항식 계산이 여기에 의존한다.

**FFT/IFFT (Number Theoretic Transform)**:
  재귀적 Cooley-Tukey radix-2 알고리즘.

사용 예시:
    >>> p = Polynomial([FR(1), FR(2), FR(3)])  # 1 + 2x + 3x²
    >>> p.evaluate(FR(2))  # FR(17)
"""

from zkgrid.plonk.field import FR, get_root_of_unity


# 이 계수 개수 이상이면 FFT 곱셈을 사용한다
FFT_THRESHOLD = 64


# ─────────────────────────────────────────────────────────────────────
# Polynomial 클래스
# ─────────────────────────────────────────────────────────────────────

class Polynomial:
    """유한체 FR 위의 다항식.

    coeffs = [c₀, c₁, c₂, ...] → c₀ + c₁x + c₂x² + ...
    """

    def __init__(self, coeffs=None):
        if coeffs is None:
            self.coeffs = [FR(0)]
        else:
            self.coeffs = [c if isinstance(c, FR) else FR(c) for c in coeffs]
            if not self.coeffs:
                self.coeffs = [FR(0)]
        self._trim()

    def _trim(self):
        """최고차의 0 계수를 제거한다."""
        while len(self.coeffs) > 1 and self.coeffs[-1] == 0:
            self.coeffs.pop()

    @property
    def degree(self):
        """다항식의 차수. 영 다항식의 차수는 0으로 정의한다."""
        return len(self.coeffs) - 1

    def is_zero(self):
        return len(self.coeffs) == 1 and self.coeffs[0] == 0

    def evaluate(self, point):
        """Horner's method로 p(point)를 계산한다."""
        if not isinstance(point, FR):
            point = FR(point)
        result = FR(0)
        for coeff in reversed(self.coeffs):
            result = result * point + coeff
        return result

    def __add__(self, other):
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        longer, shorter = self.coeffs, other.coeffs
        if len(shorter) > len(longer):
            longer, shorter = shorter, longer
        result = list(longer)
        for i, c in enumerate(shorter):
            result[i] = result[i] + c
        return Polynomial(result)

    def __radd__(self, other):
        return self.__add__(other)

    def __sub__(self, other):
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        return self + (-other)

    def __rsub__(self, other):
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        return other.__sub__(self)

    def __neg__(self):
        return Polynomial([-c for c in self.coeffs])

    def __mul__(self, other):
        """다항식 곱셈 또는 스칼라곱."""
        if isinstance(other, (int, FR)):
            if isinstance(other, int):
                other = FR(other)
            return Polynomial([c * other for c in self.coeffs])
        if min(len(self.coeffs), len(other.coeffs)) >= FFT_THRESHOLD:
            return Polynomial(_fft_multiply(self.coeffs, other.coeffs))
        result = [FR(0)] * (len(self.coeffs) + len(other.coeffs) - 1)
        for i, a in enumerate(self.coeffs):
            if a == 0:
                continue
            for j, b in enumerate(other.coeffs):
                result[i + j] = result[i + j] + a * b
        return Polynomial(result)

    def __rmul__(self, other):
        return self.__mul__(other)

    def __eq__(self, other):
        if isinstance(other, (int, FR)):
            other = Polynomial([other])
        if not isinstance(other, Polynomial):
            return False
        return self.coeffs == other.coeffs

    def __repr__(self):
        terms = []
        for i, c in enumerate(self.coeffs):
            if c == 0:
                continue
            if i == 0:
                terms.append(str(int(c)))
            elif i == 1:
                terms.append(f"{int(c)}*x")
            else:
                terms.append(f"{int(c)}*x^{i}")
        return "Poly(" + " + ".join(terms) + ")" if terms else "Poly(0)"

    def __len__(self):
        return len(self.coeffs)

    def shift_argument(self, factor):
        """p(factor·x)의 계수를 반환한다: cᵢ → factorⁱ · cᵢ.

        Round 3에서 z(ω·x)를 구성할 때 사용한다.
        """
        shifted = []
        power = FR(1)
        for c in self.coeffs:
            shifted.append(c * power)
            power = power * factor
        return Polynomial(shifted)

    def divide_by_vanishing(self, n):
        """Z_H(x) = x^n - 1 로 나눈다.

        x^n ≡ 1 (mod Z_H)을 이용한 O(deg) 나눗셈:
            q[i] = c[i + n] + q[i + n]  (높은 차수부터)
        나머지는 c[i] + q[i] (i < n) 이다.

        Returns:
            Polynomial: 몫 다항식

        Raises:
            ValueError: 나머지가 0이 아닌 경우 (제약 불만족)
        """
        coeffs = self.coeffs
        deg = len(coeffs) - 1
        if deg < n:
            if self.is_zero():
                return Polynomial.zero()
            raise ValueError("소거 다항식으로 나누어 떨어지지 않습니다 (제약 불만족)")

        quotient = [FR(0)] * (deg - n + 1)
        for i in range(deg - n, -1, -1):
            upper = quotient[i + n] if i + n < len(quotient) else FR(0)
            quotient[i] = coeffs[i + n] + upper

        for i in range(n):
            q_i = quotient[i] if i < len(quotient) else FR(0)
            if coeffs[i] + q_i != 0:
                raise ValueError("소거 다항식으로 나누어 떨어지지 않습니다 (제약 불만족)")
        return Polynomial(quotient)

    @classmethod
    def zero(cls):
        return cls([FR(0)])

    @classmethod
    def one(cls):
        return cls([FR(1)])

    @classmethod
    def vanishing(cls, n):
        """소거 다항식 Z_H(x) = x^n - 1."""
        coeffs = [FR(0)] * (n + 1)
        coeffs[0] = FR(-1)
        coeffs[n] = FR(1)
        return cls(coeffs)

    @classmethod
    def from_evaluations(cls, evals, omega):
        """도메인 {1, ω, ..., ω^(n-1)} 위의 평가값에서 다항식을 복원한다 (IFFT)."""
        return cls(ifft(evals, omega))


# ─────────────────────────────────────────────────────────────────────
# FFT / IFFT (Number Theoretic Transform)
# ─────────────────────────────────────────────────────────────────────

def fft(coeffs, omega):
    """FFT (NTT): 계수 → 평가값 [p(1), p(ω), ..., p(ω^{n-1})].

    Args:
        coeffs: FR 원소 리스트 (길이는 2의 거듭제곱)
        omega: n차 원시 단위근
    """
    n = len(coeffs)
    if n == 1:
        return [coeffs[0] if isinstance(coeffs[0], FR) else FR(coeffs[0])]

    even_vals = fft(coeffs[0::2], omega * omega)
    odd_vals = fft(coeffs[1::2], omega * omega)

    # 버터플라이 결합
    result = [None] * n
    omega_k = FR(1)
    half = n // 2
    for k in range(half):
        t = omega_k * odd_vals[k]
        result[k] = even_vals[k] + t
        result[k + half] = even_vals[k] - t
        omega_k = omega_k * omega

    return result


def ifft(evals, omega):
    """역 FFT: 평가값 → 계수.

    ω^{-1}로 FFT를 수행한 뒤 n으로 나눈다.
    """
    n = len(evals)
    coeffs = fft(evals, FR(1) / omega)
    n_inv = FR(1) / FR(n)
    return [c * n_inv for c in coeffs]


def _fft_multiply(left, right):
    """FFT 기반 합성곱. 결과 길이는 len(left) + len(right) - 1."""
    result_len = len(left) + len(right) - 1
    size = 1
    while size < result_len:
        size <<= 1
    omega = get_root_of_unity(size)
    zero = FR(0)
    left_evals = fft(list(left) + [zero] * (size - len(left)), omega)
    right_evals = fft(list(right) + [zero] * (size - len(right)), omega)
    product = [x * y for x, y in zip(left_evals, right_evals)]
    return ifft(product, omega)[:result_len]


# ─────────────────────────────────────────────────────────────────────
# 다항식 나눗셈 (Polynomial Long Division)
# ─────────────────────────────────────────────────────────────────────

def poly_div(a, b):
    """다항식 긴 나눗셈: a(x) = b(x) · q(x) + r(x).

    Round 5의 열기 증명에서 (p(x) - p(ζ)) / (x - ζ) 계산에 쓰인다.

    Returns:
        tuple: (몫 Polynomial, 나머지 Polynomial)

    Raises:
        ValueError: 제수가 영 다항식인 경우
    """
    if b.is_zero():
        raise ValueError("0으로 나눌 수 없습니다")

    remainder = list(a.coeffs)
    divisor = b.coeffs
    deg_b = len(divisor) - 1
    deg_a = len(remainder) - 1

    if deg_a < deg_b:
        return Polynomial.zero(), Polynomial(remainder)

    quotient = [FR(0)] * (deg_a - deg_b + 1)
    lead_inv = FR(1) / divisor[-1]

    for i in range(deg_a - deg_b, -1, -1):
        coeff = remainder[i + deg_b] * lead_inv
        quotient[i] = coeff
        if coeff == 0:
            continue
        for j in range(deg_b + 1):
            remainder[i + j] = remainder[i + j] - coeff * divisor[j]

    return Polynomial(quotient), Polynomial(remainder[:deg_b] or [FR(0)])


def lagrange_basis(domain, i):
    """i번째 Lagrange 기저 다항식 L_i(x) = ∏_{j≠i} (x - d_j) / (d_i - d_j).

    임의의 (작은) 도메인용. 단위근 도메인에서는 from_evaluations가 훨씬 빠르다.
    """
    result = Polynomial([FR(1)])
    denominator = FR(1)

    for j, d_j in enumerate(domain):
        if j == i:
            continue
        result = result * Polynomial([-d_j, FR(1)])
        denominator = denominator * (domain[i] - d_j)

    return result * (FR(1) / denominator)
