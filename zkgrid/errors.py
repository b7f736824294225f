"""
zkgrid 오류 계층
=================

  ZkGridError
  ├── RangeError                  입력이 스칼라 필드 [0, r) 밖 (ValueError)
  ├── WitnessGenerationError      비밀값이 커밋먼트와 맞지 않음 / 제약 불만족
  ├── ProofGenerationError        증명 백엔드 실패 (재시도 가능)
  │   ├── ProofTimeoutError
  │   └── ProofCancelledError
  ├── LedgerError
  │   ├── SimulationError             컨트랙트가 실패할 트랜잭션 (치명적)
  │   ├── SubmissionError             네트워크/시퀀스 오류 (재시도 가능)
  │   └── VerificationRejectedError   온체인 검증자가 증명을 거부 (치명적)
  │       └── ReplayError             이미 소비된 (세션, 널리파이어)
  ├── InvalidSessionStateError    허용되지 않는 세션 상태 전이
  ├── SessionNotFoundError
  └── CircuitArtifactError        회로 아티팩트 형식/파라미터 불일치
"""


class ZkGridError(Exception):
    """zkgrid 오류의 기반 클래스.

    retryable: 같은 입력으로 다시 시도할 가치가 있는 일시적 오류인지 여부
    """

    retryable = False


class RangeError(ZkGridError, ValueError):
    pass


class WitnessGenerationError(ZkGridError):
    pass


class ProofGenerationError(ZkGridError):
    retryable = True


class ProofTimeoutError(ProofGenerationError):
    pass


class ProofCancelledError(ProofGenerationError):
    retryable = False


class LedgerError(ZkGridError):
    """원장 상호작용 오류.

    code: 컨트랙트 오류 코드 또는 전송 계층 오류 이름 (있으면)
    """

    def __init__(self, message, code=None):
        super().__init__(message)
        self.code = code


class SimulationError(LedgerError):
    pass


class SubmissionError(LedgerError):
    retryable = True


class VerificationRejectedError(LedgerError):
    pass


class ReplayError(VerificationRejectedError):
    pass


class InvalidSessionStateError(ZkGridError):
    pass


class SessionNotFoundError(ZkGridError, LookupError):
    pass


class CircuitArtifactError(ZkGridError):
    pass
