# CMS-like configurable parameters
MINIMUM_BID = 100                   # 최소 입찰가 (기본가 없는 선수)
BID_INCREMENT = 10                  # 입찰 단위
PLAYERS_PER_TEAM = 5                # 팀당 최대 인원 (주장 포함)
TEAM_BUDGET = 1000                  # 팀 초기 예산
ENABLE_TIMER = True                 # 선수별 제한 시간 사용
TIMER_DURATION_SEC = 30             # 선수별 제한 시간(초)
ENABLE_UNSOLD_RETURN = True         # 유찰자 재경매
UNSOLD_RETURN_ROUNDS = 1            # 재경매 라운드 수
NEXT_PLAYER_DELAY_SEC = 5           # 다음 선수까지 대기(초)
ENFORCE_SINGLE_CHANNEL = True       # 하나의 채널에서만 진행
STATE_FILE = "data/auction_state.json"      # 진행 중 경매 저장 위치
ARCHIVE_FILE = "data/auction_archive.json"  # 종료된 경매 기록
