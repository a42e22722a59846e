# components/bid_panel.py
import discord

from models.view_format import fmt_current_round
from services.errors import AuctionError


class BidPanel(discord.ui.View):
    """
    운영자 전용 입찰 패널
    - author_id만 상호작용 가능(interaction_check)
    - 팀 선택 → 금액 증감 → 입찰 / 패스, 그리고 낙찰·유찰·되돌리기
    - 낙찰/유찰은 on_resolve(channel, how) 코루틴에 위임 (연출·다음 선수 진행은 Cog 담당)
    """
    def __init__(self, *, author_id: int, service, on_resolve, timeout_sec: int = 600):
        super().__init__(timeout=timeout_sec)
        self.author_id = author_id
        self.service = service
        self.on_resolve = on_resolve
        self.team_id: str | None = None
        self._amount: int | None = None

        self.team_select.options = [
            discord.SelectOption(label=t.name[:100], value=t.id)
            for t in service.state.teams[:25]
        ]

    # ─────────────────────────────────────────────
    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        """버튼 권한 확인"""
        if interaction.user and interaction.user.id == self.author_id:
            return True
        if not interaction.response.is_done():
            await interaction.response.send_message("경매 진행자만 조작할 수 있습니다.", ephemeral=True)
        else:
            await interaction.followup.send("경매 진행자만 조작할 수 있습니다.", ephemeral=True)
        return False

    def get_content(self) -> str:
        svc = self.service
        lines = [fmt_current_round(svc)]
        team = svc.team(self.team_id) if self.team_id else None
        if team:
            if self._amount is None:
                self._amount = svc.ledger.quick_bid_amount(team.id)
            lines.append(
                f"🎯 **{team.name}** 금액: {self._amount}P "
                f"(잔여 {team.remaining_budget}P / 최대 {svc.max_bid(team.id)}P)"
            )
        else:
            lines.append("🎯 팀을 선택하세요.")
        return "\n".join(lines)

    async def _refresh(self, interaction: discord.Interaction, notice: str | None = None):
        content = self.get_content()
        if notice:
            content = f"{notice}\n{content}"
        if not interaction.response.is_done():
            await interaction.response.edit_message(content=content, view=self)
        else:
            await interaction.edit_original_response(content=content, view=self)

    # ─────────────────────── 팀 선택 ───────────────────────
    @discord.ui.select(placeholder="입찰 팀 선택", min_values=1, max_values=1, row=0)
    async def team_select(self, interaction: discord.Interaction, select: discord.ui.Select):
        self.team_id = select.values[0]
        self._amount = None
        await self._refresh(interaction)

    # ─────────────────────── 증감 버튼 ───────────────────────
    async def _adjust_bid(self, interaction: discord.Interaction, steps: int):
        if not self.team_id or self._amount is None:
            return await interaction.response.send_message("먼저 팀을 선택하세요.", ephemeral=True)
        svc = self.service
        new = self._amount + steps * svc.state.settings.bid_increment
        if new > svc.max_bid(self.team_id):
            return await interaction.response.send_message("최대 입찰 가능 금액을 초과합니다.", ephemeral=True)
        min_bid = svc.min_bid()
        if min_bid is not None and new < min_bid:
            return await interaction.response.send_message("최소 입찰 금액보다 낮게 설정할 수 없습니다.", ephemeral=True)
        self._amount = new
        await self._refresh(interaction)

    @discord.ui.button(label="+1단위", style=discord.ButtonStyle.secondary, row=1)
    async def inc1(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._adjust_bid(interaction, 1)

    @discord.ui.button(label="+5단위", style=discord.ButtonStyle.secondary, row=1)
    async def inc5(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._adjust_bid(interaction, 5)

    @discord.ui.button(label="-1단위", style=discord.ButtonStyle.secondary, row=1)
    async def dec1(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._adjust_bid(interaction, -1)

    # ─────────────────────── 입찰 / 패스 ───────────────────────
    @discord.ui.button(label="입찰", style=discord.ButtonStyle.success, row=2)
    async def do_bid(self, interaction: discord.Interaction, button: discord.ui.Button):
        if not self.team_id:
            return await interaction.response.send_message("먼저 팀을 선택하세요.", ephemeral=True)
        result = self.service.place_bid(self.team_id, self._amount)
        self._amount = None
        if not result:
            return await self._refresh(interaction, f"⚠️ {result.reason.value}")
        await self._refresh(interaction, f"🟢 {self.service.team(self.team_id).name} **{result.bid.amount}P** 입찰!")

    @discord.ui.button(label="패스", style=discord.ButtonStyle.primary, row=2)
    async def do_pass(self, interaction: discord.Interaction, button: discord.ui.Button):
        if not self.team_id:
            return await interaction.response.send_message("먼저 팀을 선택하세요.", ephemeral=True)
        self.service.pass_team(self.team_id)
        await self._refresh(interaction, f"🔵 {self.service.team(self.team_id).name} 패스.")

    @discord.ui.button(label="되돌리기", style=discord.ButtonStyle.secondary, row=2)
    async def do_undo(self, interaction: discord.Interaction, button: discord.ui.Button):
        ok = self.service.undo()
        self._amount = None
        await self._refresh(interaction, "↩️ 마지막 입찰을 취소했습니다." if ok else "되돌릴 입찰이 없습니다.")

    # ─────────────────────── 낙찰 / 유찰 ───────────────────────
    @discord.ui.button(label="낙찰", style=discord.ButtonStyle.danger, row=3)
    async def do_sold(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._resolve(interaction, "sold")

    @discord.ui.button(label="유찰", style=discord.ButtonStyle.danger, row=3)
    async def do_unsold(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self._resolve(interaction, "unsold")

    async def _resolve(self, interaction: discord.Interaction, how: str):
        if self.service.current_item() is None:
            return await interaction.response.send_message("진행 중인 선수가 없습니다.", ephemeral=True)
        if how == "sold" and self.service.state.round.highest_bid is None:
            return await interaction.response.send_message("입찰이 없어 낙찰할 수 없습니다.", ephemeral=True)
        self.team_id = None
        self._amount = None
        await interaction.response.edit_message(content="⏳ 결과 처리 중...", view=self)
        try:
            await self.on_resolve(interaction.channel, how)
        except AuctionError as e:
            await interaction.followup.send(str(e), ephemeral=True)
            return
        await interaction.edit_original_response(content=self.get_content(), view=self)
