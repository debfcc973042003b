from typing import Optional
import uuid

from .tracer import OrchestrationTracer

DEMO_TOOL_SEQUENCE = [
    "analyze_spending_patterns",
    "categorize_transactions",
    "detect_fees_and_subscriptions",
    "generate_savings_recommendations",
]


async def create_demo_scenario(
    tracer: OrchestrationTracer,
    session_id: Optional[str] = None,
    user_id: str = "demo-user",
) -> str:
    """Record a complete four-tool financial analysis and return its report"""

    suffix = uuid.uuid4().hex[:8]
    session_id = session_id or f"demo-session-{suffix}"
    orchestration_id = f"demo-orchestration-{suffix}"

    memory_before = {
        "preferences": ["weekly_insights: true", "fee_alerts: true"],
        "categories": ["grocery: Groceries", "gas: Transportation"],
        "last_analysis": "2024-01-01T00:00:00Z",
    }
    await tracer.start_orchestration(orchestration_id, session_id, user_id, DEMO_TOOL_SEQUENCE, memory_before)

    await tracer.log_tool_call(
        orchestration_id,
        "analyze_spending_patterns",
        {"userId": user_id, "timeframe": "month"},
        {
            "patterns": [
                {"category": "Groceries", "trend": "stable", "averageAmount": 120.50, "frequency": 8},
                {"category": "Transportation", "trend": "increasing", "averageAmount": 65.00, "frequency": 12},
            ],
            "totalSpent": 1486.00,
            "topCategories": ["Groceries", "Transportation", "Dining"],
        },
        245,
        True,
        "Analyzed 45 transactions over month timeframe, identified stable grocery spending "
        "and increasing transportation costs",
        {"confidence": 0.92, "memory_accessed": ["preferences", "categories"], "memory_updated": ["last_analysis"]},
    )

    await tracer.log_tool_call(
        orchestration_id,
        "categorize_transactions",
        {
            "transactions": [
                {"id": "tx1", "description": "WHOLE FOODS MARKET", "amount": 87.45},
                {"id": "tx2", "description": "SHELL GAS STATION", "amount": 42.30},
            ]
        },
        {
            "categorizedTransactions": [
                {"transactionId": "tx1", "category": "Groceries", "subcategory": "Food", "confidence": 0.95},
                {"transactionId": "tx2", "category": "Transportation", "subcategory": "Fuel", "confidence": 0.88},
            ]
        },
        156,
        True,
        "Successfully categorized 2 transactions using learned patterns and merchant recognition",
        {"confidence": 0.91, "memory_accessed": ["categories"], "memory_updated": ["categories"]},
    )

    await tracer.log_tool_call(
        orchestration_id,
        "detect_fees_and_subscriptions",
        {
            "userId": user_id,
            "transactions": [
                {"id": "tx3", "description": "NETFLIX SUBSCRIPTION", "amount": 15.99, "isRecurring": True},
                {"id": "tx4", "description": "BANK OVERDRAFT FEE", "amount": 35.00, "isRecurring": False},
            ],
        },
        {
            "detectedFees": [
                {"transactionId": "tx3", "type": "subscription", "annualCost": 191.88},
                {"transactionId": "tx4", "type": "bank_fee", "annualCost": 420.00},
            ],
            "totalAnnualCost": 611.88,
        },
        189,
        True,
        "Detected 1 subscription and 1 bank fee with total annual impact of $611.88",
        {"confidence": 0.87, "memory_accessed": ["preferences"]},
    )

    await tracer.log_tool_call(
        orchestration_id,
        "generate_savings_recommendations",
        {
            "userId": user_id,
            "spendingPatterns": [{"category": "Transportation", "amount": 780.00, "frequency": 12}],
            "detectedFees": [{"type": "bank_fee", "amount": 35.00, "description": "Overdraft fee"}],
        },
        {
            "recommendations": [
                {"id": "rec1", "title": "Eliminate overdraft fees", "potentialSavings": 420.00, "priority": 9},
                {"id": "rec2", "title": "Optimize transportation spending", "potentialSavings": 156.00, "priority": 6},
            ],
            "totalPotentialSavings": 576.00,
        },
        298,
        True,
        "Generated 2 high-impact recommendations with total potential savings of $576/year",
        {"confidence": 0.89, "memory_accessed": ["preferences"], "memory_updated": ["preferences"]},
    )

    memory_after = {
        "preferences": ["weekly_insights: true", "fee_alerts: true", "last_recommendations: 2"],
        "categories": ["grocery: Groceries", "gas: Transportation", "whole_foods: Groceries"],
        "last_analysis": tracer.now().isoformat(),
    }
    await tracer.complete_orchestration(
        orchestration_id,
        {
            "insights": "Generated comprehensive financial analysis",
            "recommendations": 2,
            "potentialSavings": 576.00,
            "nextSteps": ["Implement overdraft protection", "Explore transportation alternatives"],
        },
        True,
        "Successfully completed end-to-end financial analysis with actionable recommendations",
        memory_after,
    )

    return await tracer.generate_trace_visualization(orchestration_id)
