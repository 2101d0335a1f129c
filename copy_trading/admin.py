# copy_trading/admin.py
from django.contrib import admin
from copy_trading.models import UserCopyRecord


@admin.register(UserCopyRecord)
class UserCopyRecordAdmin(admin.ModelAdmin):
    list_display = ['copy_id', 'owner_id', 'master_bot_id', 'invested_amount',
                    'status', 'final_pnl', 'updated_at']
    list_filter = ['status', 'master_bot_id']
    search_fields = ['copy_id', 'owner_id', 'master_bot_id']
    readonly_fields = ['created_at', 'closed_at', 'final_pnl', 'final_value', 'final_stats', 'updated_at']
