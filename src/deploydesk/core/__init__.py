"""deploydesk Core -- 领域模型、纯函数规则与持久化"""
