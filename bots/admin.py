# bots/admin.py
from django.contrib import admin
from bots.models import BotConfiguration


@admin.register(BotConfiguration)
class BotConfigurationAdmin(admin.ModelAdmin):
    list_display = ['bot_id', 'name', 'trading_pair', 'win_rate',
                    'daily_target_percent', 'updated_at']
    search_fields = ['bot_id']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = (
        ('Bot', {
            'fields': ('bot_id',)
        }),
        ('Configuration', {
            'fields': ('config',)
        }),
        ('Timestamps', {
            'fields': ('created_at', 'updated_at')
        })
    )

    @admin.display(description='Name')
    def name(self, obj):
        return obj.config.get('name')

    @admin.display(description='Pair')
    def trading_pair(self, obj):
        return obj.config.get('trading_pair')

    @admin.display(description='Win rate')
    def win_rate(self, obj):
        return obj.config.get('win_rate')

    @admin.display(description='Daily target %')
    def daily_target_percent(self, obj):
        return obj.config.get('daily_target_percent')
