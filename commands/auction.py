import io
import csv
import asyncio
import random
import logging
import discord
from discord.ext import commands

from utils.format import split_semicolon, parse_player_row
from services.auction_service import AuctionService
from services.errors import AuctionError
from services.storage import StateStore, AuctionArchive
from components.bid_panel import BidPanel
from models.entities import AuctionSettings
import config as CFG

from models.view_format import (
    norm,
    fmt_player_line,
    fmt_team_line,
    fmt_current_round,
    fmt_points,
)

logger = logging.getLogger(__name__)

# 서비스는 모듈 전역에서 하나만 사용
service = AuctionService()

def same_channel_guard(ctx: commands.Context, svc: AuctionService) -> bool:
    """경매는 한 채널에서만 진행 — 다른 채널이면 False"""
    return svc.ensure_channel(ctx.channel.id)


def _log_task_error(task: asyncio.Task):
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("background task failed: %s", task.get_name(), exc_info=exc)


class AuctionCog(commands.Cog, name="Auction"):
    def __init__(
        self,
        bot: commands.Bot,
        store: StateStore | None = None,
        archive: AuctionArchive | None = None,
        svc: AuctionService | None = None,
    ):
        self.bot = bot
        self.service = svc or service  # 필요 시 교체/모킹 가능
        self.next_player_delay = CFG.NEXT_PLAYER_DELAY_SEC
        self.store = store or StateStore(CFG.STATE_FILE)
        self.archive = archive or AuctionArchive(CFG.ARCHIVE_FILE)
        self.channel: discord.abc.Messageable | None = None

        self.service.subscribe(self._on_change)
        self.service.on_complete(self._on_complete)

    # Cog 전체에 적용할 체크(모든 커맨드 공통)
    async def cog_check(self, ctx: commands.Context) -> bool:
        return same_channel_guard(ctx, self.service)

    def _spawn(self, coro) -> asyncio.Task:
        """백그라운드 태스크 (실패는 로그로 남김)"""
        task = asyncio.get_running_loop().create_task(coro)
        task.add_done_callback(_log_task_error)
        return task

    # ───────────────────────── 저장/알림 연결 ─────────────────────────
    def _on_change(self, svc: AuctionService, action: str):
        if action == "tick":
            remaining = svc.state.round.timer
            if remaining in (10, 5) and self.channel is not None:
                self._spawn(self.channel.send(f"⏳ {remaining}초 남았습니다!"))
            return
        if action == "reset":
            self.store.clear()
            return
        self.store.save(svc.state)

    def _on_complete(self, svc: AuctionService):
        saved = self.archive.save_completed(svc.state)
        logger.info("completed auction archived as %s", saved.id)

    def _ensure_timer(self):
        if self.service.timer is None:
            timer = self.service.attach_timer()
            timer.on_expire = self._on_timer_expired

    def _on_timer_expired(self):
        if self.channel is None:
            self.service.expire_current_item()
            return
        # 만료 시점에 바로 확정해야 이후 들어온 입찰이 이 결과에 섞이지 않음
        player, top = self._resolve_held("expire")
        if player is not None:
            self._spawn(self._announce_and_next(self.channel, player, top, "expire"))

    # ───────────────────────── 진행 연출 ─────────────────────────
    def _resolve_held(self, how: str):
        """다음 선수 진행을 보류한 채 결과 확정. (선수, 확정 직전 최고 입찰) 반환"""
        svc = self.service
        top = svc.state.round.highest_bid
        svc.hold_advance()
        try:
            if how == "sold":
                player = svc.resolve_sold()
            elif how == "unsold":
                player = svc.resolve_unsold()
            else:
                player = svc.expire_current_item()
        except AuctionError:
            # 다른 결과 처리의 대기 구간이면 보류 상태는 그대로 둔다
            if svc.current_item() is not None:
                svc.release_advance()
            raise

        if player is None and svc.current_item() is not None:
            svc.release_advance()
        return player, top

    async def resolve_and_next(self, channel, how: str):
        """결과 확정 → 발표 → 예고 카운트다운 → 다음 선수"""
        player, top = self._resolve_held(how)
        if player is not None:
            await self._announce_and_next(channel, player, top, how)

    async def _announce_and_next(self, channel, player, top, how: str):
        svc = self.service
        prefix = "⏱️ 시간 종료! " if how == "expire" else ""
        if player.is_sold and top is not None:
            team = svc.team(top.team_id)
            await channel.send(f"{prefix}🎉 **{player.name}** 낙찰! 팀 **{team.name}**, 가격 **{top.amount}P**")
        else:
            await channel.send(f"{prefix}⚪ **{player.name}** 유찰.")

        seq = svc.sequencer
        if seq.pending_players() or seq.unsold_players():
            await self._shuffle_countdown(channel, self.next_player_delay)

        pending_before = len(svc.sequencer.pending_players())
        svc.release_advance()
        if svc.state.is_completed:
            return await self._announce_completed(channel)

        if pending_before == 0:
            await channel.send("🔁 **유찰자 재경매 라운드 시작**")
        await channel.send(fmt_current_round(svc))

    async def _shuffle_countdown(self, channel, seconds: int):
        """다음 선수 추첨 연출 + 카운트다운 메시지 1개를 계속 수정"""
        names = [p.name for p in self.service.sequencer.pending_players()]
        names += [p.name for p in self.service.sequencer.unsold_players()]
        if not names or seconds <= 0:
            return None

        def content(s: int) -> str:
            if s <= 0:
                return "▶️ **다음 선수 공개!**"
            return f"🎲 다음 선수 추첨 중... **{random.choice(names)}** ⏳ {s}초"

        msg = await channel.send(content(seconds))
        for s in range(seconds - 1, -1, -1):
            await asyncio.sleep(1)
            try:
                await msg.edit(content=content(s))
            except discord.HTTPException:
                # 메시지 삭제/권한 변경 등으로 edit 실패 시 새로 보내고 계속
                msg = await channel.send(content(s))
        return msg

    async def _announce_completed(self, channel):
        s = self.service.summary()
        lines = [
            "✅ 모든 경매 종료. `!파일 내보내기`로 CSV를 받을 수 있어요.",
            f"선수 {s['total_players']}명 — 낙찰 {s['sold_players']} / 유찰 {s['unsold_players']} "
            f"/ 총 사용 {fmt_points(s['total_spent'])}",
        ]
        lines += [fmt_team_line(t) for t in self.service.state.teams]
        await channel.send("\n".join(lines)[:1900])

    # ───────────────────────── 도움말 ─────────────────────────
    @commands.command(name="도움말")
    async def help_cmd(self, ctx: commands.Context, *args):
        """
        !도움말            → 전체 명령어 요약
        !도움말 <토픽>    → 상세 도움말 (경매, 등록, 입찰, 조회, 파일)
        """
        COMMANDS = {
            "팀 등록": ("!팀 등록 <팀명>", "입찰 팀을 등록합니다."),
            "선수 등록": (
                "!선수 등록 (CSV 첨부) 또는 !선수 등록 이름;기본가;역할;평점;주장",
                "선수를 등록합니다. 기본가/역할/평점/주장은 비워도 됩니다."
            ),
            "경매 시작": (
                "!경매 시작 [팀당인원] [팀예산]",
                f"경매를 시작합니다. 최소입찰 {CFG.MINIMUM_BID}P, 단위 {CFG.BID_INCREMENT}P."
            ),
            "입찰": ("!입찰 <팀명> [금액]", "금액을 생략하면 다음 최소 입찰가로 빠른 입찰합니다."),
            "패스": ("!패스 <팀명>", "해당 팀은 이번 선수에 더 이상 입찰할 수 없습니다."),
            "낙찰": ("!낙찰", "최고 입찰 팀에게 현재 선수를 낙찰합니다."),
            "유찰": ("!유찰", "현재 선수를 유찰 처리합니다. 설정 시 재경매 라운드에서 다시 나옵니다."),
            "되돌리기": ("!되돌리기", "현재 선수의 마지막 입찰을 취소합니다. 낙찰/유찰은 되돌릴 수 없습니다."),
            "패널": ("!패널", "진행자 전용 버튼 패널을 엽니다."),
            "경매 종료": ("!경매 종료", "남은 선수와 관계없이 경매를 끝냅니다."),
            "경매 재시작": ("!경매 재시작", "결과와 예산을 되돌리고 처음부터 다시 진행합니다."),
            "경매 리셋": ("!경매 리셋", "팀/선수 등록까지 모두 초기화합니다."),
            "경매 불러오기": ("!경매 불러오기", "저장된 진행 상태에서 이어서 진행합니다."),
            "조회": ("!조회 현재|팀 <팀명>|유찰자|순서|요약", "경매 상태를 조회합니다."),
            "파일 내보내기": ("!파일 내보내기", "경매 결과를 CSV로 다운로드합니다."),
            "기록": ("!기록 목록 / !기록 삭제 <id>", "종료된 경매 기록을 조회/삭제합니다."),
        }

        TOPICS = {
            "경매": ("경매 시작/진행", [
                "① 팀 등록: `!팀 등록 <팀명>` (팀 수만큼)",
                "② 선수 등록: `!선수 등록` + CSV 첨부  또는  `!선수 등록 이름;기본가;역할;평점;주장`",
                "③ 경매 시작: `!경매 시작 [팀당인원] [팀예산]`  예) `!경매 시작 5 1000`",
                "",
                f"제한 시간 {CFG.TIMER_DURATION_SEC}초 — 입찰이 들어오면 다시 {CFG.TIMER_DURATION_SEC}초",
                "시간 종료 시 최고 입찰이 있으면 낙찰, 없으면 유찰",
                "주장 수가 팀 수와 정확히 같을 때만 주장이 0P로 각 팀에 자동 배정됩니다.",
            ]),
            "입찰": ("입찰 규칙", [
                "첫 입찰은 선수 기본가(없으면 최소 입찰가) 이상",
                f"이후 입찰은 현재 최고가 + {CFG.BID_INCREMENT}P 이상",
                "잔여 예산 이내, 그리고 남은 자리를 최소 입찰가로 채울 예산은 남겨야 함",
                "마지막 한 자리는 잔여 예산 전부 입찰 가능",
            ]),
            "조회": ("조회 명령 모음", [
                "`!조회 현재` — 현재 선수와 최고 입찰",
                "`!조회 팀 <팀명>` — 팀 선수/잔여 예산/최대 입찰가",
                "`!조회 유찰자` — 유찰된 선수 목록",
                "`!조회 순서` — 경매 순서와 상태",
                "`!조회 요약` — 낙찰/유찰/대기 수와 총 사용 금액",
            ]),
            "파일": ("결과 파일", [
                "`!파일 내보내기` — 낙찰 결과 CSV 다운로드",
            ]),
        }

        if args:
            topic_key = "".join(args).replace(" ", "")
            for key, (title, lines) in TOPICS.items():
                if key in topic_key:
                    body = "\n".join(f"- {line}" for line in lines)
                    return await ctx.send(f"**[{title}]**\n{body}")
            for name, (usage, desc) in COMMANDS.items():
                if name.replace(" ", "") in topic_key:
                    return await ctx.send(f"**{name}**\n사용법: `{usage}`\n설명: {desc}")
            return await ctx.send("해당 토픽이 없습니다. `!도움말`로 전체 목록을 확인하세요.")

        header = (
            "📖 **명령어 전체 목록**\n"
            "필요시 `!도움말 <토픽>`으로 더 자세한 설명을 볼 수 있어요.\n"
            "예: `!도움말 경매`, `!도움말 입찰`, `!도움말 조회`"
        )
        lines = [f"- **{n}** — `{u}`\n  · {d}" for n, (u, d) in COMMANDS.items()]
        await ctx.send((f"{header}\n\n" + "\n".join(lines))[:1900])

    # ───────────────────────── 등록 ─────────────────────────
    @commands.command(name="팀")
    async def team_cmd(self, ctx: commands.Context, sub: str = None, *, name: str = None):
        if sub == "목록":
            teams = self.service.state.teams
            if not teams:
                return await ctx.send("등록된 팀이 없습니다.")
            return await ctx.send("\n".join(fmt_team_line(t) for t in teams)[:1900])
        if sub != "등록" or not name:
            return await ctx.send("사용법: `!팀 등록 <팀명>`  /  `!팀 목록`")
        team = self.service.add_team(name)
        await ctx.send(f"팀 등록 완료: **{team.name}**")

    @commands.command(name="선수")
    async def player_cmd(self, ctx: commands.Context, *raw_args):
        # ── 조회 분기 ──
        if raw_args and raw_args[0] in ("조회", "정보"):
            key = " ".join(raw_args[1:]).strip()
            players = self.service.state.players
            if key:
                found = [p for p in players if norm(key) in norm(p.name)]
                if not found:
                    return await ctx.send("해당 이름의 선수가 없습니다.")
                players = found[:10]
            desc = "\n".join(self._player_line(p) for p in players) or "등록된 선수가 없습니다."
            return await ctx.send(desc[:1900])

        if not raw_args or raw_args[0] != "등록":
            return await ctx.send("사용법: `!선수 등록` (CSV 첨부)  /  `!선수 등록 이름;기본가;역할;평점;주장`  /  `!선수 조회 [이름]`")

        # CSV 첨부 우선
        if ctx.message.attachments:
            count, skipped = 0, 0
            for att in ctx.message.attachments:
                if not att.filename.lower().endswith(".csv"):
                    continue
                data = await att.read()
                reader = csv.reader(io.StringIO(data.decode("utf-8-sig")))
                for row in reader:
                    if not row or row[0].strip().startswith("#"):
                        continue
                    try:
                        self.service.add_player(**parse_player_row([c.strip() for c in row]))
                        count += 1
                    except ValueError:
                        skipped += 1
            return await ctx.send(f"CSV에서 선수 {count}명 등록 완료." + (f" (형식 오류 {skipped}줄 건너뜀)" if skipped else ""))

        payload = " ".join(raw_args[1:]).strip()
        try:
            parts = split_semicolon(payload, expected_min=1, expected_max=5)
            player = self.service.add_player(**parse_player_row(parts))
        except ValueError:
            return await ctx.send("형식을 확인해 주세요. `이름;기본가;역할;평점;주장` 순서입니다.")
        await ctx.send(f"선수 등록 완료: {player.name}")

    def _player_line(self, p) -> str:
        team = self.service.team(p.team_id) if p.team_id else None
        return fmt_player_line(p, team.name if team else None)

    # ───────────────────────── 경매 제어 ─────────────────────────
    @commands.command(name="경매")
    async def auction_cmd(self, ctx: commands.Context, sub: str = None, *args):
        svc = self.service
        if sub in ("리셋", "reset"):
            svc.reset_all()
            return await ctx.send("🧹 경매 상태를 초기화했습니다. 팀/선수 등록부터 다시 진행하세요.")

        if sub in ("종료", "end", "stop"):
            svc.end_auction()
            return await self._announce_completed(ctx.channel)

        if sub in ("재시작", "restart"):
            svc.restart()
            return await ctx.send("🔄 결과와 예산을 되돌렸습니다. `!경매 시작`으로 다시 시작하세요.")

        if sub in ("불러오기", "load"):
            state = self.store.load()
            if state is None:
                return await ctx.send("저장된 경매가 없습니다.")
            self.channel = ctx.channel
            self._ensure_timer()
            svc.load_state(state)
            return await ctx.send(f"📂 **{state.name}** 불러오기 완료.\n{fmt_current_round(svc)}")

        if sub != "시작":
            return await ctx.send("사용법: `!경매 시작 [팀당인원] [팀예산]` / `!경매 종료` / `!경매 재시작` / `!경매 리셋` / `!경매 불러오기`")

        try:
            per_team = int(args[0]) if len(args) > 0 else CFG.PLAYERS_PER_TEAM
            team_budget = int(args[1]) if len(args) > 1 else CFG.TEAM_BUDGET
        except ValueError:
            return await ctx.send("팀당인원/예산은 숫자여야 합니다. 예) `!경매 시작 5 1000`")

        settings = AuctionSettings(players_per_team=per_team, team_budget=team_budget)
        svc.state.name = f"{ctx.guild.name if ctx.guild else 'DM'} 경매"
        self.channel = ctx.channel
        self._ensure_timer()
        svc.start(settings)

        captains = [p for p in svc.state.players if p.is_captain and p.sold_price == 0]
        if captains:
            await ctx.send("주장 배정: " + ", ".join(f"{p.name} → {svc.team(p.team_id).name}" for p in captains))
        await ctx.send(f"선수 {len(svc.state.players)}명, 팀 {len(svc.state.teams)}개. 경매를 시작합니다!")
        if svc.state.is_completed:
            return await self._announce_completed(ctx.channel)
        await ctx.send(fmt_current_round(svc))

    @commands.command(name="입찰")
    async def bid_cmd(self, ctx: commands.Context, *args):
        if not args:
            return await ctx.send("사용법: `!입찰 <팀명> [금액]`")
        amount = None
        name_parts = list(args)
        if len(args) > 1 and args[-1].replace(",", "").isdigit():
            amount = int(args[-1].replace(",", ""))
            name_parts = list(args[:-1])
        team = self.service.find_team(" ".join(name_parts))
        if team is None:
            return await ctx.send("해당 팀명을 찾지 못했습니다.")
        result = self.service.place_bid(team.id, amount)
        if not result:
            return await ctx.send(f"⚠️ {result.reason.value}")
        await ctx.send(f"🟢 **{team.name}** {result.bid.amount}P 입찰! (다음 최소 {fmt_points(self.service.min_bid())})")

    @commands.command(name="패스")
    async def pass_cmd(self, ctx: commands.Context, *, team_name: str = None):
        team = self.service.find_team(team_name or "")
        if team is None:
            return await ctx.send("사용법: `!패스 <팀명>`")
        if not self.service.pass_team(team.id):
            return await ctx.send("진행 중인 경매가 없습니다.")
        await ctx.send(f"🔵 **{team.name}** 패스.")
        if self.service.current_item() is not None and not self.service.eligible_teams():
            await ctx.send("입찰 가능한 팀이 없습니다. `!낙찰` 또는 `!유찰`로 정리하세요.")

    @commands.command(name="낙찰")
    async def sold_cmd(self, ctx: commands.Context):
        await self.resolve_and_next(ctx.channel, "sold")

    @commands.command(name="유찰")
    async def unsold_cmd(self, ctx: commands.Context):
        await self.resolve_and_next(ctx.channel, "unsold")

    @commands.command(name="되돌리기")
    async def undo_cmd(self, ctx: commands.Context):
        if not self.service.undo():
            return await ctx.send("되돌릴 입찰이 없습니다.")
        await ctx.send(f"↩️ 마지막 입찰을 취소했습니다.\n{fmt_current_round(self.service)}")

    @commands.command(name="패널")
    async def panel_cmd(self, ctx: commands.Context):
        if self.service.current_item() is None:
            return await ctx.send("진행 중인 선수가 없습니다.")
        panel = BidPanel(author_id=ctx.author.id, service=self.service, on_resolve=self.resolve_and_next)
        await ctx.send(panel.get_content(), view=panel)

    # ───────────────────────── 조회 그룹 ─────────────────────────
    @commands.group(name="조회", invoke_without_command=True)
    async def query_group(self, ctx: commands.Context, *args):
        return await ctx.send(
            "사용법:\n"
            "• `!조회 현재`\n"
            "• `!조회 팀 <팀명>`\n"
            "• `!조회 유찰자`\n"
            "• `!조회 순서`\n"
            "• `!조회 요약`"
        )

    @query_group.command(name="현재")
    async def query_current(self, ctx: commands.Context):
        svc = self.service
        lines = [fmt_current_round(svc)]
        eligible = svc.eligible_teams()
        if eligible:
            lines.append("입찰 가능: " + ", ".join(f"{t.name}(최대 {svc.max_bid(t.id)}P)" for t in eligible))
        await ctx.send("\n".join(lines)[:1900])

    @query_group.command(name="팀")
    async def query_team_sub(self, ctx: commands.Context, *, team_name: str | None = None):
        if not team_name:
            return await ctx.send("사용법: `!조회 팀 <팀명>`")
        team = self.service.find_team(team_name)
        if team is None:
            return await ctx.send("해당 팀명을 찾지 못했습니다. 팀명이 정확한지 확인해 주세요.")

        lines = [fmt_team_line(team, self.service.max_bid(team.id))]
        if not team.players:
            lines.append("낙찰 된 선수: (없음)")
        for pid in team.players:
            p = self.service.state.player_by_id(pid)
            if p:
                lines.append(fmt_player_line(p, team.name))
        await ctx.send("\n".join(lines)[:1900])

    @query_group.command(name="유찰자", aliases=["failed", "fail"])
    async def query_failed_sub(self, ctx: commands.Context):
        failed = [p for p in self.service.state.players if p.is_unsold]
        if not failed:
            return await ctx.send("유찰자가 없습니다.")
        await ctx.send("\n".join(fmt_player_line(p) for p in failed)[:1900])

    @query_group.command(name="순서", aliases=["경매순서"])
    async def query_order(self, ctx: commands.Context):
        state = self.service.state
        if not state.players:
            return await ctx.send("경매 순서가 없습니다.")
        lines = []
        for i, p in enumerate(state.players):
            marker = "▶️ " if state.is_started and i == state.current_index and p.is_pending else ""
            lines.append(f"{marker}{i + 1}. {self._player_line(p)}")
        await ctx.send("\n".join(lines)[:1900])

    @query_group.command(name="요약")
    async def query_summary(self, ctx: commands.Context):
        s = self.service.summary()
        state = self.service.state
        status = "종료" if state.is_completed else ("진행 중" if state.is_started else "시작 전")
        await ctx.send(
            f"상태: {status} — 선수 {s['total_players']}명 / 낙찰 {s['sold_players']} / "
            f"유찰 {s['unsold_players']} / 대기 {s['pending_players']} / 총 사용 {fmt_points(s['total_spent'])}"
        )

    # ───────────────────────── 결과 내보내기 / 기록 ─────────────────────────
    @commands.command(name="파일")
    async def export_cmd(self, ctx: commands.Context, sub: str = None):
        if sub != "내보내기":
            return await ctx.send("사용법: `!파일 내보내기`")
        data = self.service.export_csv_bytes()
        await ctx.send(file=discord.File(io.BytesIO(data), filename="auction_result.csv"))

    @commands.command(name="기록")
    async def archive_cmd(self, ctx: commands.Context, sub: str = None, saved_id: str = None):
        if sub == "삭제" and saved_id:
            ok = self.archive.delete(saved_id)
            return await ctx.send("삭제했습니다." if ok else "해당 기록이 없습니다.")
        if sub != "목록":
            return await ctx.send("사용법: `!기록 목록` / `!기록 삭제 <id>`")
        saved = self.archive.list()
        if not saved:
            return await ctx.send("저장된 경매 기록이 없습니다.")
        lines = [
            f"`{s.id}` {s.auction.name} — {s.completed_at:%Y-%m-%d %H:%M} / "
            f"낙찰 {s.sold_players}/{s.total_players} / 유찰 {s.unsold_players} / 총 {fmt_points(s.total_spent)}"
            for s in saved[:10]
        ]
        await ctx.send("\n".join(lines)[:1900])


# 확장 로드용 엔트리
async def setup(bot: commands.Bot):
    await bot.add_cog(AuctionCog(bot))
